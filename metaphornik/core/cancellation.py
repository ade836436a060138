"""Cancellation — cooperative cancellation tokens for workspace flows.

Invariants:
    - A token is cancelled iff its source has been cancelled (one-way, never reset)
    - A fresh source is issued per flow; an old token never becomes live again
    - Checking a token has no side effects

Design Decisions:
    - Source/token pair over a shared boolean: a late result from a superseded flow
      sees ITS token cancelled even after a newer flow started (ADR: overlapping
      sessions raced on the single flag)
    - Cooperative, not preemptive: in-flight gateway calls run to completion; callers
      check the token before every state-mutating step after an await
"""


class CancellationToken:
    """Read-only view of a CancellationSource."""

    __slots__ = ("_source",)

    def __init__(self, source: "CancellationSource"):
        self._source = source

    @property
    def cancelled(self) -> bool:
        return self._source.cancelled


class CancellationSource:
    """Owns the cancelled flag; hands out tokens to the work it governs."""

    __slots__ = ("_cancelled", "token")

    def __init__(self) -> None:
        self._cancelled = False
        self.token = CancellationToken(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class CancellationScope:
    """One live CancellationSource per lane; begin() supersedes the lane's previous flow."""

    def __init__(self) -> None:
        self._sources: dict[object, CancellationSource] = {}

    def begin(self, lane: object) -> CancellationToken:
        """Cancel the lane's current flow (if any) and issue a new token."""
        previous = self._sources.get(lane)
        if previous is not None:
            previous.cancel()
        source = CancellationSource()
        self._sources[lane] = source
        return source.token

    def is_current(self, lane: object, token: CancellationToken) -> bool:
        """Whether token belongs to the lane's live (uncancelled) flow."""
        source = self._sources.get(lane)
        return source is not None and source.token is token and not source.cancelled

    def cancel(self, lane: object) -> None:
        """Cancel the lane's live flow without starting a new one."""
        source = self._sources.get(lane)
        if source is not None:
            source.cancel()

    def cancel_all(self) -> None:
        """Global stop — cancel every lane's live flow."""
        for source in self._sources.values():
            source.cancel()
