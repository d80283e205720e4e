"""Export data models."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from landpool.parcels.models import Parcel

BLANK_FIELD = "_________________"


class PartyProfile(BaseModel):
    """Display data for one party, supplied by the caller at render time."""

    display_name: str
    id_number: str | None = None
    survey_id: str | None = None

    @classmethod
    def from_parcel(
        cls, parcel: Parcel, display_name: str, id_number: str | None = None
    ) -> PartyProfile:
        return cls(display_name=display_name, id_number=id_number, survey_id=parcel.survey_id)


class PartyTerms(BaseModel):
    """One party's line in the agreement."""

    name: str
    id_number: str = BLANK_FIELD
    survey_id: str = BLANK_FIELD
    size_acres: float
    share_pct: float
    signed_on: date | None = None


class AgreementSummary(BaseModel):
    """Structured content behind a rendered agreement."""

    agreement_id: str
    platform: str
    executed_at: datetime
    start_date: date
    end_date: date
    term_months: int
    total_size_acres: float
    requesting: PartyTerms
    target: PartyTerms
