"""Lexical scope tracking for the scope explorer."""
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set


@dataclass
class ScopeFrame:
    """Names bound by one lexical construct (function, let, for, ...)."""
    kind: str = 'local'
    names: Set[str] = field(default_factory=set)
    # Names declared with `global` inside this construct
    globals: Set[str] = field(default_factory=set)

    def copy(self) -> 'ScopeFrame':
        return ScopeFrame(kind=self.kind, names=set(self.names), globals=set(self.globals))


class ScopeStack:
    """Stack of active lexical scopes, innermost last.

    Frames are only consulted for membership ("is `x` locally bound right
    now?"). Popping a frame forgets its names for good.
    """

    def __init__(self, frames: Optional[List[ScopeFrame]] = None):
        self.frames: List[ScopeFrame] = list(frames) if frames else []

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def active(self) -> bool:
        """True when at least one local scope encloses the current position."""
        return bool(self.frames)

    @property
    def top(self) -> Optional[ScopeFrame]:
        return self.frames[-1] if self.frames else None

    def push(self, kind: str = 'local') -> ScopeFrame:
        frame = ScopeFrame(kind=kind)
        self.frames.append(frame)
        return frame

    def pop(self) -> ScopeFrame:
        """Discard the innermost frame.

        Raises:
            ValueError: If no frame is active
        """
        if not self.frames:
            raise ValueError("Cannot pop from an empty scope stack")
        return self.frames.pop()

    @contextmanager
    def frame(self, kind: str = 'local') -> Iterator[ScopeFrame]:
        """Push a frame for the duration of a `with` block."""
        frame = self.push(kind)
        try:
            yield frame
        finally:
            self.pop()

    def _closest_binding(self, name: str) -> Optional[ScopeFrame]:
        for frame in reversed(self.frames):
            if name in frame.globals:
                return None
            if name in frame.names:
                return frame
        return None

    def is_bound(self, name: str) -> bool:
        """Whether a read of `name` resolves to a local binding.

        Walks from the innermost frame outwards; the closest frame wins, so
        a `global` declaration hides locals of the same name further out.
        """
        return self._closest_binding(name) is not None

    def is_global(self, name: str) -> bool:
        """Whether `name` was declared `global` by the closest frame mentioning it."""
        for frame in reversed(self.frames):
            if name in frame.names:
                return False
            if name in frame.globals:
                return True
        return False

    def bind(self, name: str) -> Optional[ScopeFrame]:
        """Record an assignment to `name`.

        An assignment reuses the closest frame that already binds the name
        (Julia assigns to an existing outer local) and otherwise creates the
        binding in the innermost frame.

        Returns:
            The frame that absorbed the binding, or None at top level
        """
        if not self.frames:
            return None
        frame = self._closest_binding(name) or self.frames[-1]
        frame.names.add(name)
        return frame

    def bind_new(self, name: str) -> Optional[ScopeFrame]:
        """Bind `name` in the innermost frame, shadowing any outer binding."""
        if not self.frames:
            return None
        frame = self.frames[-1]
        frame.names.add(name)
        frame.globals.discard(name)
        return frame

    def declare_global(self, name: str) -> None:
        """Mark `name` as global within the innermost frame."""
        if self.frames:
            self.frames[-1].globals.add(name)
            self.frames[-1].names.discard(name)

    def copy(self) -> 'ScopeStack':
        return ScopeStack([frame.copy() for frame in self.frames])
