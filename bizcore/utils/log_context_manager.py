import threading
from typing import Dict, List


class LoggingContextHandler:
    """
    Holds a per-thread stack of logging contexts so nested
    `logging_context` blocks and concurrent tenant jobs do not leak into each other.
    """
    def __init__(self):
        self._local = threading.local()

    def _stack(self) -> List[Dict]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = [{}]
            self._local.stack = stack
        return stack

    def add_context(self, **new_context_vars):
        stack = self._stack()
        stack.append({**stack[-1], **new_context_vars})

    def get(self, key):
        return self._stack()[-1].get(key)

    def get_current_context(self) -> Dict:
        return self._stack()[-1]

    def remove_context(self):
        stack = self._stack()
        if len(stack) > 1:
            stack.pop()

    def __str__(self):
        return str(self._stack())


logging_context_handler = LoggingContextHandler()
