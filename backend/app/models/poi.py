"""POI models - provider-sourced candidates, never persisted."""

from pydantic import BaseModel, Field

from backend.app.models.common import PoiCategory


class CandidatePOI(BaseModel):
    """Point of interest returned by the POI provider."""

    name: str
    category: PoiCategory
    address: str
    description: str
    rating: float | None = None
    price: float | None = None
    location: str | None = Field(default=None, description='Coordinate as "lon,lat"')
    tel: str | None = None
    provider_id: str | None = None


class PoiCandidates(BaseModel):
    """Aggregated candidates for one destination."""

    hotels: list[CandidatePOI] = Field(default_factory=list)
    restaurants: list[CandidatePOI] = Field(default_factory=list)
    attractions: list[CandidatePOI] = Field(default_factory=list)

    def all(self) -> list[CandidatePOI]:
        """All candidates, hotels first."""
        return [*self.hotels, *self.restaurants, *self.attractions]


class PlaceVerification(BaseModel):
    """Web-search evidence that a named place exists."""

    exists: bool
    address: str | None = None
    opening_hours: str | None = None
    rating: float | None = None
    description: str | None = None
