import logging

from django.conf import settings
from django.core.cache import cache
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Events published by the access-control core.
HIERARCHY_INTEGRITY_FAULT = "hierarchy.integrity_fault"
PERMISSION_SCOPE_CONFLICT = "permissions.scope_conflict"
ROLE_PERMISSIONS_CHANGED = "permissions.role_changed"
MANAGER_CHANGED = "hierarchy.manager_changed"


class EventBus:
    """
    A simple, in-process event bus using Django's Signal dispatcher.
    Lets the access-control services report faults and changes without
    importing the apps that record or react to them.

    - register_event(event_name): Pre-defines an event.
    - publish(event_name, **kwargs): Sends an event.
    - subscribe(event_name, handler): Registers a function to handle an event.
    """
    def __init__(self):
        self._signals = {}

    def register_event(self, event_name: str):
        if event_name not in self._signals:
            self._signals[event_name] = Signal()
        logger.debug(f"Event '{event_name}' registered.")

    def publish(self, event_name: str, **kwargs):
        """
        Publishes an event to all subscribed handlers.

        Handlers receive ``sender`` plus the keyword arguments given here.
        Handler exceptions propagate to the publisher.
        """
        if event_name not in self._signals:
            self.register_event(event_name)
            logger.warning(f"Event '{event_name}' was published without being pre-registered.")

        signal = self._signals[event_name]
        logger.debug(f"Publishing event '{event_name}' with args: {kwargs}")
        results = signal.send(sender=self.__class__, **kwargs)
        if not results:
            logger.debug(f"Event '{event_name}' was published, but no handlers received it.")
        return results

    def publish_once(self, event_name: str, dedupe_key, timeout=None, **kwargs):
        """
        Publishes unless the same ``dedupe_key`` went out for this event within
        ``timeout`` seconds (``ACCESS_CONTROL['FAULT_REPORT_INTERVAL']`` by default).
        Returns ``None`` when the event is suppressed.
        """
        if timeout is None:
            timeout = getattr(settings, 'ACCESS_CONTROL', {}).get('FAULT_REPORT_INTERVAL', 3600)
        if not cache.add(f"event-once:{event_name}:{dedupe_key}", True, timeout):
            logger.debug(f"Event '{event_name}' for {dedupe_key} already reported; suppressed.")
            return None
        return self.publish(event_name, **kwargs)

    def subscribe(self, event_name: str, handler):
        if event_name not in self._signals:
            self.register_event(event_name)

        signal = self._signals[event_name]
        # Strong reference so module-level handlers registered from AppConfig.ready stay connected
        signal.connect(handler, weak=False, dispatch_uid=f"{event_name}:{handler.__module__}.{handler.__name__}")
        logger.debug(f"Handler {handler.__name__} subscribed to event '{event_name}'.")

    def unsubscribe(self, event_name: str, handler):
        signal = self._signals.get(event_name)
        if signal is None:
            return False
        return signal.disconnect(dispatch_uid=f"{event_name}:{handler.__module__}.{handler.__name__}")


# Global instance of the event bus to be used throughout the application
event_bus = EventBus()
for _event in (HIERARCHY_INTEGRITY_FAULT, PERMISSION_SCOPE_CONFLICT, ROLE_PERMISSIONS_CHANGED, MANAGER_CHANGED):
    event_bus.register_event(_event)
