from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NormalizeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payload: Any = None
    context_risk_level: Optional[str] = None
    legal_validation: bool = False # Apply the {success, result} envelope rules
