from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FormDraft(BaseModel):
    """
    Free-text and flag fields entered across the registration / risk
    assessment wizard steps.

    Unknown keys sent by the UI are kept as extras so a wizard step can add
    fields without a schema change here.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )

    name: Optional[str] = None
    department: Optional[str] = None
    description: Optional[str] = None
    purpose: Optional[str] = None
    ai_capabilities: Optional[str] = None
    risk_level: Optional[str] = None
    system_category: Optional[str] = None
    training_datasets: Optional[str] = None
    potential_impact: Optional[str] = None
    mitigation_measures: Optional[str] = None
    vulnerabilities: Optional[str] = None

    # Risk factor checkboxes
    impacts_vulnerable_groups: bool = False
    uses_deep_learning: bool = False
    is_transparent: bool = False
    uses_personal_data: bool = False
    uses_sensitive_data: bool = False
    impacts_autonomous: bool = False
    humans_in_loop: bool = False

    def merged(self, updates: Dict[str, Any]) -> "FormDraft":
        """Return a new draft with `updates` (camelCase or snake_case keys) applied."""
        data = self.model_dump(by_alias=True)
        for key, value in updates.items():
            field_name = _field_for_key(key)
            if field_name is not None:
                data[to_camel(field_name)] = value
            else:
                data[key] = value
        return FormDraft.model_validate(data)

    def to_payload(self) -> Dict[str, Any]:
        """Body sent to the remote analysis endpoints (camelCase, extras included)."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _field_for_key(key: str) -> Optional[str]:
    if key in FormDraft.model_fields:
        return key
    for name in FormDraft.model_fields:
        if to_camel(name) == key:
            return name
    return None
