"""
Named-channel event emitter used by the SDK facade.
"""

from typing import Any, Callable, Dict, List, Optional


Handler = Callable[..., Any]


class EventEmitter:
    """Minimal pub/sub: handlers subscribe to an event name and receive its arguments."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        """
        Subscribe ``handler`` to ``event``.

        Returns the handler so it can later be passed to ``off``.
        """
        self._handlers.setdefault(event, []).append(handler)
        return handler

    def once(self, event: str, handler: Handler) -> Handler:
        """Subscribe ``handler`` for the next emission of ``event`` only."""
        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return handler(*args)

        # Lets off() find the wrapper from the original handler
        wrapper.listener = handler  # type: ignore[attr-defined]
        self.on(event, wrapper)
        return handler

    def off(self, event: str, handler: Optional[Handler] = None) -> None:
        """Unsubscribe ``handler`` from ``event``, or every handler when None."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event, [])
        for registered in handlers:
            if registered is handler or getattr(registered, "listener", None) is handler:
                handlers.remove(registered)
                return

    def emit(self, event: str, *args: Any) -> bool:
        """Call the handlers of ``event`` in subscription order. Returns whether any ran."""
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            handler(*args)
        return bool(handlers)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))
