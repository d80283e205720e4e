"""Agreement renderer: completed negotiation -> contract text."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from landpool.core.config import ExportConfig
from landpool.core.errors import NotCompleted
from landpool.core.types import NegotiationStatus
from landpool.export.models import BLANK_FIELD, AgreementSummary, PartyProfile, PartyTerms
from landpool.integration.models import IntegrationNegotiation

_DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "agreement_template.yml"


class AgreementRenderer:
    """Formats an executed negotiation as a fixed-structure contract.

    The narrative comes from a YAML template. Rendering reads nothing but its
    arguments, so identical inputs give identical text.
    """

    def __init__(
        self,
        config: ExportConfig | None = None,
        template_path: str | Path | None = None,
    ) -> None:
        self._config = config or ExportConfig()
        path = template_path or self._config.template_path
        self._template_path = Path(path) if path else _DEFAULT_TEMPLATE_PATH
        self._template: dict[str, Any] = {}
        self._load_template()

    def _load_template(self) -> None:
        with open(self._template_path) as fh:
            self._template = yaml.safe_load(fh) or {}

    @property
    def template_path(self) -> Path:
        return self._template_path

    def summary(
        self,
        negotiation: IntegrationNegotiation,
        requesting: PartyProfile,
        target: PartyProfile,
    ) -> AgreementSummary:
        """Structured terms of an executed agreement.

        Raises:
            NotCompleted: The negotiation has not been signed by both parties.
        """
        if negotiation.status != NegotiationStatus.COMPLETED or negotiation.executed_at is None:
            raise NotCompleted(
                f"Negotiation {negotiation.id!r} is '{negotiation.status}', not completed"
            )

        def terms(profile: PartyProfile, owner_id: str, size: float, share: float) -> PartyTerms:
            signature = negotiation.signature_for(owner_id)
            return PartyTerms(
                name=profile.display_name,
                id_number=profile.id_number or BLANK_FIELD,
                survey_id=profile.survey_id or BLANK_FIELD,
                size_acres=size,
                share_pct=share,
                signed_on=signature.signed_at.date() if signature else None,
            )

        return AgreementSummary(
            agreement_id=negotiation.id,
            platform=self._config.platform_name,
            executed_at=negotiation.executed_at,
            start_date=negotiation.period.start.date(),
            end_date=negotiation.period.end.date(),
            term_months=negotiation.period.months,
            total_size_acres=negotiation.total_size,
            requesting=terms(
                requesting,
                negotiation.requesting_owner,
                negotiation.requesting_size,
                negotiation.profit_sharing_ratio.requesting,
            ),
            target=terms(
                target,
                negotiation.target_owner,
                negotiation.target_size,
                negotiation.profit_sharing_ratio.target,
            ),
        )

    def render_text(
        self,
        negotiation: IntegrationNegotiation,
        requesting: PartyProfile,
        target: PartyProfile,
    ) -> str:
        """Render the full agreement as plain text."""
        summary = self.summary(negotiation, requesting, target)
        fields = self._common_fields(summary)
        t = self._template

        lines: list[str] = [t.get("title", "LAND INTEGRATION AGREEMENT"), ""]
        lines.append(t["preamble"].format(**fields))
        lines.append("")
        for index, party in enumerate((summary.requesting, summary.target), start=1):
            lines.append(t["party_line"].format(
                index=index,
                name=party.name,
                id_number=party.id_number,
                survey_id=party.survey_id,
                size=party.size_acres,
                **fields,
            ))
        lines.append("")

        for clause in t.get("clauses", []):
            lines.append(clause["title"].upper())
            lines.append(clause["text"].format(**fields))
            lines.append("")

        lines.append(t.get("signature_heading", "SIGNATURES:"))
        for party in (summary.requesting, summary.target):
            lines.append(t["signature_line"].format(
                name=party.name,
                signed_on=party.signed_on.isoformat() if party.signed_on else "Not signed",
                **fields,
            ))
        lines.append("")

        for line in t.get("footer", []):
            lines.append(line.format(**fields))

        return "\n".join(lines).strip() + "\n"

    def render_json(
        self,
        negotiation: IntegrationNegotiation,
        requesting: PartyProfile,
        target: PartyProfile,
    ) -> str:
        return self.summary(negotiation, requesting, target).model_dump_json(indent=2)

    @staticmethod
    def _common_fields(summary: AgreementSummary) -> dict[str, Any]:
        executed = summary.executed_at
        return {
            "platform": summary.platform,
            "agreement_id": summary.agreement_id,
            "execution_date": executed.date().isoformat(),
            "execution_day": executed.day,
            "execution_month": executed.strftime("%B"),
            "execution_year": executed.year,
            "total_size": summary.total_size_acres,
            "term_months": summary.term_months,
            "start_date": summary.start_date.isoformat(),
            "end_date": summary.end_date.isoformat(),
            "requesting_share": summary.requesting.share_pct,
            "target_share": summary.target.share_pct,
        }
