"""Pydantic models for listings, alert records and change sets."""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SeasonPeriod(BaseModel):
    """Listing advertised for a single season label, e.g. "Summer"."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["season"] = "season"
    season: str

    def label(self) -> str:
        return self.season


class TermsPeriod(BaseModel):
    """Listing advertised for an ordered list of terms."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["terms"] = "terms"
    terms: List[str]

    def label(self) -> str:
        return ", ".join(self.terms)


Period = Annotated[Union[SeasonPeriod, TermsPeriod], Field(discriminator="kind")]


class Listing(BaseModel):
    """One job posting as published in an upstream listings.json.

    Upstream documents carry either a top-level ``season`` or ``terms`` key;
    both are lifted into ``period`` on construction, and exactly one of them
    must be present.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    company_name: str
    company_url: str = ""
    title: str
    locations: List[str] = []
    sponsorship: str = ""
    active: bool
    is_visible: bool
    date_posted: int
    date_updated: int
    source: Optional[str] = None
    url: Optional[str] = None
    period: Period

    @model_validator(mode="before")
    @classmethod
    def _lift_period(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "period" in data:
            return data

        has_season = data.get("season") is not None
        has_terms = data.get("terms") is not None
        if has_season and has_terms:
            raise ValueError("listing has both 'season' and 'terms'")
        if not (has_season or has_terms):
            raise ValueError("listing has neither 'season' nor 'terms'")

        data = dict(data)
        if has_season:
            data["period"] = {"kind": "season", "season": data.pop("season")}
        else:
            data["period"] = {"kind": "terms", "terms": data.pop("terms")}
        return data

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.id, self.company_name)

    @property
    def is_open(self) -> bool:
        return self.active and self.is_visible

    def to_document(self) -> Dict[str, Any]:
        """Dump back to the upstream listings.json shape."""
        doc = self.model_dump(exclude={"period"})
        if isinstance(self.period, SeasonPeriod):
            doc["season"] = self.period.season
        else:
            doc["terms"] = list(self.period.terms)
        return doc


class AlertRecord(BaseModel):
    """One message previously posted to the sink for a listing."""
    message_id: str
    payload: Dict[str, Any]


class ChangeSet(BaseModel):
    """Result of comparing two snapshots of the same source."""
    opened: List[Listing] = []
    closed: List[Listing] = []

    @property
    def is_empty(self) -> bool:
        return not (self.opened or self.closed)
