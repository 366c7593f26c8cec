"""Application item model and the adapter for raw item-details payloads."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.pricing import migrate_pricing_config
from models.pricing import PricingConfig
from models.wizard_config import FieldDefinition, StepType, WizardConfiguration

_LEGACY_INFO_KEYS: Mapping[str, str] = {
    "form_fields": "formFields",
    "wizard_config": "wizardConfig",
    "pricing_config": "pricingConfig",
    "application_type": "applicationType",
    "campaign_assignment_enabled": "campaignAssignmentEnabled",
    "selected_campaign_ids": "selectedCampaignIds",
}


class ApplicationItem(BaseModel):
    """A published application form together with its wizard configuration."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    slug: str
    title: str = ""
    form_fields: tuple[FieldDefinition, ...] = ()
    wizard: WizardConfiguration = Field(default_factory=WizardConfiguration)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    application_type: str = "vendor"
    status: str = "pending"
    campaign_assignment_enabled: bool = False
    selected_campaign_ids: tuple[int, ...] = ()

    @model_validator(mode="after")
    def _check_unique_field_names(self) -> "ApplicationItem":
        seen: set[str] = set()
        for field in self.form_fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name '{field.name}'")
            seen.add(field.name)
        return self

    @property
    def is_wizard_mode(self) -> bool:
        return self.wizard.is_wizard_mode

    def field_by_name(self, name: str) -> Optional[FieldDefinition]:
        return next((field for field in self.form_fields if field.name == name), None)

    def fields_for_step(self, step_id: str) -> tuple[FieldDefinition, ...]:
        return tuple(field for field in self.form_fields if field.step_id == step_id)

    def has_step_type(self, step_type: StepType) -> bool:
        return any(step.type == step_type for step in self.wizard.steps)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | list[Any]) -> "ApplicationItem":
        """Build an item from the item-details API response.

        The API may wrap the item in a one-element list and older forms use
        snake_case keys inside ``item_info``; both are reconciled here so the
        wizard engine only sees the canonical shape.
        """

        if isinstance(payload, list):
            if not payload:
                raise ValueError("Empty item-details payload")
            payload = payload[0]
        info_raw = payload.get("item_info") or payload.get("itemInfo") or {}
        info: dict[str, Any] = dict(info_raw) if isinstance(info_raw, Mapping) else {}
        for legacy, canonical in _LEGACY_INFO_KEYS.items():
            if canonical not in info and legacy in info:
                info[canonical] = info[legacy]

        fields = [_migrate_field(field) for field in info.get("formFields") or [] if isinstance(field, Mapping)]
        return cls(
            id=payload["id"],
            slug=str(payload.get("slug") or ""),
            title=str(payload.get("title") or ""),
            form_fields=tuple(FieldDefinition.model_validate(field) for field in fields),
            wizard=WizardConfiguration.model_validate(info.get("wizardConfig") or {}),
            pricing=migrate_pricing_config(info.get("pricingConfig")),
            application_type=info.get("applicationType") or "vendor",
            status=info.get("status") or "pending",
            campaign_assignment_enabled=bool(info.get("campaignAssignmentEnabled")),
            selected_campaign_ids=tuple(int(cid) for cid in info.get("selectedCampaignIds") or ()),
        )


def _migrate_field(raw: Mapping[str, Any]) -> dict[str, Any]:
    field = dict(raw)
    if "fileConfig" not in field and ("acceptedFileTypes" in field or "maxFileSize" in field):
        field["fileConfig"] = {
            "acceptedTypes": field.get("acceptedFileTypes"),
            "maxSize": field.get("maxFileSize"),
        }
    return field


__all__ = ["ApplicationItem"]
