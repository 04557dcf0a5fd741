from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class Dimension(str, Enum):
    """Event fields that are aggregated"""
    BROWSER = "browser"
    DEVICE = "device_type"
    COUNTRY = "country"


def rank_counts(counts: Dict[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    """
    Order (key, count) pairs by count descending, then key ascending.

    The key tie-break makes "most common" answers deterministic
    regardless of the order events were read in.
    """
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked if limit is None else ranked[:limit]


class AggregatedAnalytics(BaseModel):
    """Per-link visit counters, recomputed from raw events."""

    link_id: str
    total: int = 0
    browser_counts: Dict[str, int] = Field(default_factory=dict)
    device_counts: Dict[str, int] = Field(default_factory=dict)
    country_counts: Dict[str, int] = Field(default_factory=dict)

    def counts_for(self, dimension: Dimension) -> Dict[str, int]:
        return {
            Dimension.BROWSER: self.browser_counts,
            Dimension.DEVICE: self.device_counts,
            Dimension.COUNTRY: self.country_counts,
        }[dimension]

    def top(self, dimension: Dimension, limit: Optional[int] = None) -> List[Tuple[str, int]]:
        return rank_counts(self.counts_for(dimension), limit)

    def most_common(self, dimension: Dimension) -> Optional[str]:
        ranked = self.top(dimension, 1)
        return ranked[0][0] if ranked else None

    def top_countries(self, limit: int = 3) -> List[Tuple[str, int]]:
        return self.top(Dimension.COUNTRY, limit)

    def most_common_browser(self) -> Optional[str]:
        return self.most_common(Dimension.BROWSER)

    def most_used_device(self) -> Optional[str]:
        return self.most_common(Dimension.DEVICE)


class CountEntry(BaseModel):
    key: str
    count: int


class AnalyticsResponse(BaseModel):
    """Aggregation plus the "top" views a dashboard shows"""

    link_id: str
    total: int
    browser_counts: Dict[str, int]
    device_counts: Dict[str, int]
    country_counts: Dict[str, int]
    top_countries: List[CountEntry]
    most_common_browser: Optional[str] = None
    most_used_device: Optional[str] = None

    @classmethod
    def from_aggregation(cls, aggregation: AggregatedAnalytics, top_n: int = 3) -> "AnalyticsResponse":
        return cls(
            **aggregation.model_dump(),
            top_countries=[CountEntry(key=key, count=count) for key, count in aggregation.top_countries(top_n)],
            most_common_browser=aggregation.most_common_browser(),
            most_used_device=aggregation.most_used_device(),
        )
