"""Merge per-water fly recommendations into one ranked list for a trip.

Waters are processed one at a time so that a progress callback can fire
after each completes.  A water that fails is logged and skipped; only a
trip where every water failed is an error.
"""

import inspect
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from ..exceptions import HatchMatchError, NoTripWatersError, TripAggregationError
from .recommendations import FlyRecommendation

logger = logging.getLogger(__name__)


@dataclass
class TripWater:
    id: str
    name: str


@dataclass
class TripFlyRecommendation:
    fly_name: str
    fly_type: str
    size: str
    confidence: int  # mean across waters, rounded
    technique: str
    reasoning: str
    waters: list[str] = field(default_factory=list)
    image_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TripProgress:
    done: int
    total: int


@dataclass
class TripRecommendationResult:
    recommendations: list[TripFlyRecommendation]
    failed_waters: list[str] = field(default_factory=list)


RecommendationFetcher = Callable[[TripWater], Awaitable[list[FlyRecommendation]]]
ProgressCallback = Callable[[TripProgress], Union[None, Awaitable[None]]]


@dataclass
class _FlyTally:
    first: FlyRecommendation
    confidences: list[int] = field(default_factory=list)
    waters: list[str] = field(default_factory=list)
    image_url: Optional[str] = None


def aggregate_recommendations(
    per_water: list[tuple[str, list[FlyRecommendation]]],
) -> list[TripFlyRecommendation]:
    """Merge by case-insensitive fly name and rank.

    Flies recommended on more waters rank first, then higher mean
    confidence.  The sort is stable, so remaining ties keep the order in
    which each fly was first seen.
    """
    tallies: dict[str, _FlyTally] = {}
    for water_name, recommendations in per_water:
        for rec in recommendations:
            key = rec.fly_name.strip().lower()
            tally = tallies.get(key)
            if tally is None:
                tally = tallies[key] = _FlyTally(first=rec)
            tally.confidences.append(rec.confidence)
            if water_name not in tally.waters:
                tally.waters.append(water_name)
            if tally.image_url is None and rec.image_url:
                tally.image_url = rec.image_url

    merged = []
    for tally in tallies.values():
        first = tally.first
        reasoning = first.reasoning
        if len(tally.waters) > 1:
            reasoning = f"Recommended for {' and '.join(tally.waters)}. {first.reasoning}"
        merged.append(TripFlyRecommendation(
            fly_name=first.fly_name,
            fly_type=first.fly_type,
            size=first.size,
            # Halves round up.
            confidence=int(sum(tally.confidences) / len(tally.confidences) + 0.5),
            technique=first.technique,
            reasoning=reasoning,
            waters=list(tally.waters),
            image_url=tally.image_url,
        ))

    return sorted(merged, key=lambda r: (-len(r.waters), -r.confidence))


class TripRecommendationAggregator:
    def __init__(self, fetch_recommendations: RecommendationFetcher) -> None:
        self._fetch = fetch_recommendations

    async def aggregate_trip(
        self,
        waters: list[TripWater],
        on_progress: Optional[ProgressCallback] = None,
    ) -> TripRecommendationResult:
        """Ranked flies for the whole trip.

        Raises:
            NoTripWatersError: ``waters`` is empty.
            TripAggregationError: no water produced any recommendations.
        """
        if not waters:
            raise NoTripWatersError("Add waters to your trip first")

        total = len(waters)
        per_water: list[tuple[str, list[FlyRecommendation]]] = []
        failed: list[str] = []

        for index, water in enumerate(waters):
            try:
                recommendations = await self._fetch(water)
            except HatchMatchError as exc:
                logger.warning("Failed to get recommendations for %s: %s", water.name, exc)
                recommendations = []
            except Exception:
                logger.exception("Unexpected error getting recommendations for %s", water.name)
                recommendations = []

            if recommendations:
                per_water.append((water.name, recommendations))
            else:
                failed.append(water.name)

            if on_progress is not None:
                outcome = on_progress(TripProgress(done=index + 1, total=total))
                if inspect.isawaitable(outcome):
                    await outcome

        if not per_water:
            raise TripAggregationError("Could not get recommendations for any waters")

        if failed:
            logger.info("Trip aggregation continuing without: %s", ", ".join(failed))
        return TripRecommendationResult(
            recommendations=aggregate_recommendations(per_water),
            failed_waters=failed,
        )
