"""Region bag: shuffled rotation over the regions that have eligible locations."""

from __future__ import annotations

import random

from guessr.core.logging import log


def shuffled(items: list, rng: random.Random) -> list:
    """Fisher-Yates shuffle into a new list."""
    arr = list(items)
    for i in range(len(arr) - 1, 0, -1):
        j = rng.randrange(i + 1)
        arr[i], arr[j] = arr[j], arr[i]
    return arr


class RegionBag:
    """Shuffled region pool, refilled from the eligible list when empty.

    Two guards keep consecutive regions apart: at fill time the new bag's head
    never equals the final region of the previous bag, and at pop time the
    live last region is skipped.
    """

    def __init__(self, eligible_regions: list[str], rng: random.Random) -> None:
        self._eligible = list(eligible_regions)
        self._rng = rng
        self._bag: list[str] = []
        self.last_bag_region: str | None = None

    def __len__(self) -> int:
        return len(self._bag)

    @property
    def eligible_count(self) -> int:
        return len(self._eligible)

    def contents(self) -> list[str]:
        return list(self._bag)

    def fill(self) -> None:
        bag = shuffled(self._eligible, self._rng)

        if self.last_bag_region is not None and len(bag) > 1 and bag[0] == self.last_bag_region:
            for i in range(1, len(bag)):
                if bag[i] != self.last_bag_region:
                    bag[0], bag[i] = bag[i], bag[0]
                    break

        self._bag = bag
        log.debug(f"REGION_BAG_FILLED size={len(bag)}")

    def pop(self, last_region: str | None = None) -> str | None:
        """Take the next region, skipping ``last_region``.

        Args:
            last_region: Region of the most recent selection

        Returns:
            Region name, or None when there are no eligible regions
        """
        if not self._bag:
            self.fill()
        if not self._bag:
            return None

        # With nothing else left the head goes out; callers still apply the back-to-back rule
        index = 0
        for i, region in enumerate(self._bag):
            if region != last_region:
                index = i
                break
        region = self._bag.pop(index)

        if not self._bag:
            self.last_bag_region = region
        return region

    def snapshot(self) -> tuple[list[str], str | None]:
        return list(self._bag), self.last_bag_region

    def restore(self, state: tuple[list[str], str | None]) -> None:
        bag, last_bag_region = state
        self._bag = list(bag)
        self.last_bag_region = last_bag_region

    def clear(self) -> None:
        self._bag = []
        self.last_bag_region = None
