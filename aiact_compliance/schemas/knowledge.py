from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    system_id: Optional[str] = None
    system_desc: Optional[str] = None
    search_query: Optional[str] = None

    @model_validator(mode="after")
    def _require_some_input(self):
        if not any((self.system_id, self.system_desc, self.search_query)):
            raise ValueError("One of systemId, systemDesc or searchQuery is required")
        return self
