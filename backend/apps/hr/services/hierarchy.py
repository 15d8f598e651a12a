"""
In-memory view of the reporting hierarchy.

The employee table is loaded with a single query and indexed by manager, so
subtree questions never issue one query per level. Corrupted manager data
(a cycle) is tolerated: the offending edge is skipped, logged, and reported
once per fault interval on the ``hierarchy.integrity_fault`` event.
"""
from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from django.db import transaction

from apps.security.exceptions import HierarchyCycleError, NotFound
from shared.event_bus import HIERARCHY_INTEGRITY_FAULT, MANAGER_CHANGED, event_bus

from ..models import Employee

logger = logging.getLogger(__name__)

REQUEST_CACHE_ATTR = "_hierarchy_index"


@dataclass(frozen=True)
class EmployeeNode:
    id: int
    manager_id: Optional[int]
    department_id: Optional[int]
    is_active: bool = True
    name: str = ""
    employee_code: str = ""
    role_code: Optional[str] = None


class HierarchyIndex:
    """Adjacency index over manager links, built once and queried many times."""

    def __init__(self, nodes: Iterable[EmployeeNode]):
        self._nodes: Dict[int, EmployeeNode] = {node.id: node for node in nodes}
        self._children: Dict[int, List[int]] = defaultdict(list)
        self._by_department: Dict[int, Set[int]] = defaultdict(set)
        self._reported_edges: Set[tuple] = set()

        for node in self._nodes.values():
            if node.manager_id is not None:
                self._children[node.manager_id].append(node.id)
            if node.department_id is not None:
                self._by_department[node.department_id].add(node.id)
        for children in self._children.values():
            children.sort()

    @classmethod
    def load(cls) -> "HierarchyIndex":
        rows = Employee.objects.values_list(
            "id",
            "manager_id",
            "department_id",
            "is_active",
            "first_name",
            "last_name",
            "employee_id",
            "role__code",
        )
        return cls(
            EmployeeNode(
                id=pk,
                manager_id=manager_id,
                department_id=department_id,
                is_active=is_active,
                name=f"{first_name} {last_name}".strip(),
                employee_code=employee_code,
                role_code=role_code,
            )
            for pk, manager_id, department_id, is_active, first_name, last_name, employee_code, role_code in rows
        )

    @classmethod
    def for_request(cls, request) -> "HierarchyIndex":
        """Build the index at most once per request."""
        index = getattr(request, REQUEST_CACHE_ATTR, None)
        if index is None:
            index = cls.load()
            setattr(request, REQUEST_CACHE_ATTR, index)
        return index

    def __contains__(self, employee_id) -> bool:
        return employee_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, employee_id: int) -> Optional[EmployeeNode]:
        return self._nodes.get(employee_id)

    def direct_reports(self, employee_id: int) -> Set[int]:
        return set(self._children.get(employee_id, ()))

    def transitive_reports(self, employee_id: int) -> Set[int]:
        """Every employee below ``employee_id``; never includes ``employee_id`` itself."""
        visited = {employee_id}
        queue = deque([employee_id])
        while queue:
            current = queue.popleft()
            for child in self._children.get(current, ()):
                if child in visited:
                    # Each employee has one manager, so only the root can be reached twice.
                    self._report_cycle(child, current)
                    continue
                visited.add(child)
                queue.append(child)
        visited.discard(employee_id)
        return visited

    def team(self, employee_id: int) -> Set[int]:
        return {employee_id} | self.transitive_reports(employee_id)

    def department_members(self, department_id: Optional[int]) -> Set[int]:
        # Inactive employees stay members; soft-delete filtering is left to callers.
        if department_id is None:
            return set()
        return set(self._by_department.get(department_id, ()))

    def manager_chain(self, employee_id: int) -> List[int]:
        """Managers above ``employee_id``, nearest first. Stops at the first repeat."""
        chain: List[int] = []
        seen = {employee_id}
        node = self._nodes.get(employee_id)
        current = node.manager_id if node else None
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            node = self._nodes.get(current)
            current = node.manager_id if node else None
        return chain

    def would_create_cycle(self, employee_id: int, manager_id: Optional[int]) -> bool:
        if manager_id is None:
            return False
        if manager_id == employee_id:
            return True
        return employee_id in self.manager_chain(manager_id)

    def find_cycles(self) -> List[List[int]]:
        """Return each manager cycle once, as the list of employee ids on it."""
        cycles: List[List[int]] = []
        seen: Set[int] = set()
        for start in sorted(self._nodes):
            if start in seen:
                continue
            path: List[int] = []
            position: Dict[int, int] = {}
            current = start
            while current is not None and current in self._nodes and current not in seen:
                seen.add(current)
                position[current] = len(path)
                path.append(current)
                current = self._nodes[current].manager_id
            if current is not None and current in position:
                cycles.append(path[position[current]:])
        return cycles

    def build_tree(self, root_id: Optional[int] = None, members: Optional[Iterable[int]] = None) -> List[dict]:
        """
        Nested ``{"id", ..., "children": [...]}`` nodes.

        With ``root_id`` the result holds that single subtree. Without it the
        whole forest is returned; an employee is a root when their manager is
        empty or outside ``members``. Members caught in a manager cycle have no
        natural root, so each cycle is opened at its lowest id.
        """
        if members is None:
            allowed = set(self._nodes)
        else:
            allowed = {member for member in members if member in self._nodes}

        forest: List[dict] = []
        visited: Set[int] = set()

        def expand(root: int) -> None:
            root_node = self._tree_node(root)
            forest.append(root_node)
            visited.add(root)
            queue = deque([(root, root_node)])
            while queue:
                current, current_node = queue.popleft()
                for child in self._children.get(current, ()):
                    if child not in allowed:
                        continue
                    if child in visited:
                        self._report_cycle(child, current)
                        continue
                    visited.add(child)
                    child_node = self._tree_node(child)
                    current_node["children"].append(child_node)
                    queue.append((child, child_node))

        if root_id is not None:
            if root_id in allowed:
                expand(root_id)
            return forest

        for candidate in sorted(allowed):
            if self._nodes[candidate].manager_id not in allowed and candidate not in visited:
                expand(candidate)

        remaining = allowed - visited
        while remaining:
            expand(self._cycle_entry(min(remaining), allowed))
            remaining = allowed - visited
        return forest

    def _cycle_entry(self, start: int, allowed: Set[int]) -> int:
        path: List[int] = []
        position: Dict[int, int] = {}
        current = start
        while current not in position:
            position[current] = len(path)
            path.append(current)
            current = self._nodes[current].manager_id
            if current is None or current not in allowed:
                return start
        return min(path[position[current]:])

    def _tree_node(self, employee_id: int) -> dict:
        node = self._nodes[employee_id]
        return {
            "id": node.id,
            "employee_id": node.employee_code,
            "name": node.name,
            "department_id": node.department_id,
            "manager_id": node.manager_id,
            "role": node.role_code,
            "is_active": node.is_active,
            "children": [],
        }

    def _report_cycle(self, employee_id: int, manager_id: int) -> None:
        edge = (employee_id, manager_id)
        if edge in self._reported_edges:
            return
        self._reported_edges.add(edge)
        logger.error(
            "Manager cycle: employee %s reports to %s, who is inside their own subtree. Edge ignored.",
            employee_id,
            manager_id,
        )
        try:
            event_bus.publish_once(
                HIERARCHY_INTEGRITY_FAULT, f"{employee_id}->{manager_id}", employee_id=employee_id, manager_id=manager_id
            )
        except Exception:
            logger.exception("Could not report manager cycle %s -> %s", employee_id, manager_id)


def get_hierarchy_tree(root_id: Optional[int] = None, members: Optional[Iterable[int]] = None,
                       hierarchy: Optional[HierarchyIndex] = None) -> List[dict]:
    hierarchy = hierarchy or HierarchyIndex.load()
    return hierarchy.build_tree(root_id, members=members)


@transaction.atomic
def change_manager(employee: Employee, manager: Optional[Employee], *, performed_by=None) -> Employee:
    """
    Point ``employee`` at a new manager (or none).

    The employee and the new manager's chain are locked before the cycle
    check, so two concurrent changes cannot close a loop between them.
    """
    manager_id = manager.pk if manager is not None else None

    lock_ids = {employee.pk}
    if manager_id is not None:
        lock_ids.add(manager_id)
        lock_ids.update(HierarchyIndex.load().manager_chain(manager_id))
    locked = {
        row.pk: row
        for row in Employee.objects.select_for_update().filter(pk__in=lock_ids).order_by("pk")
    }
    if employee.pk not in locked:
        raise NotFound("Employee not found.")
    if manager_id is not None and manager_id not in locked:
        raise NotFound("Manager not found.")

    if HierarchyIndex.load().would_create_cycle(employee.pk, manager_id):
        logger.warning("Rejected manager change %s -> %s: would create a cycle", employee.pk, manager_id)
        raise HierarchyCycleError()

    target = locked[employee.pk]
    previous_manager_id = target.manager_id
    if previous_manager_id == manager_id:
        return target

    target.manager_id = manager_id
    target.save(update_fields=["manager", "updated_at"])
    employee.manager_id = manager_id
    logger.info("Employee %s now reports to %s (was %s)", target.pk, manager_id, previous_manager_id)

    transaction.on_commit(
        lambda: event_bus.publish(
            MANAGER_CHANGED,
            employee_id=target.pk,
            previous_manager_id=previous_manager_id,
            manager_id=manager_id,
            performed_by=performed_by,
        )
    )
    return target
