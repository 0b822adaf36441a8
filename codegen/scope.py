"""
Scope for NCL Code Generation.

Maps variable names to the SSA value currently bound to them inside the
function being emitted. There is at most one binding per name. A for loop
shadows its induction variable for the duration of the loop and must put
the previous binding back afterwards.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional


_UNBOUND = object()


class Scope:
    """Name -> SSA value bindings for one function"""

    def __init__(self):
        self._bindings: Dict[str, Any] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def names(self):
        return list(self._bindings)

    def clear(self):
        self._bindings.clear()

    def bind(self, name: str, value: Any):
        self._bindings[name] = value

    def lookup(self, name: str) -> Optional[Any]:
        return self._bindings.get(name)

    def shadow(self, name: str, value: Any) -> Any:
        """Bind name to value, returning a token for restore()"""
        prior = self._bindings.get(name, _UNBOUND)
        self._bindings[name] = value
        return prior

    def restore(self, name: str, prior: Any):
        """Undo shadow(): put the prior binding back, or drop the name"""
        if prior is _UNBOUND:
            self._bindings.pop(name, None)
        else:
            self._bindings[name] = prior

    @contextmanager
    def shadowed(self, name: str, value: Any) -> Iterator[None]:
        prior = self.shadow(name, value)
        try:
            yield
        finally:
            self.restore(name, prior)
