from typing import Dict


class ScreenLifetime:
    """Tracks whether a screen is still open and which request per channel is the latest.

    A pending request's result is applied only when ``is_current`` still holds for the
    ticket it was started with; results arriving after ``close`` are dropped.
    """

    def __init__(self) -> None:
        self._open = True
        self._generations: Dict[str, int] = {}

    @property
    def is_open(self) -> bool:
        return self._open

    def begin(self, channel: str) -> int:
        generation = self._generations.get(channel, 0) + 1
        self._generations[channel] = generation
        return generation

    def is_current(self, channel: str, generation: int) -> bool:
        return self._open and self._generations.get(channel) == generation

    def close(self) -> None:
        self._open = False
