from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReadmeResponse(BaseModel):
    content: str
    encoding: Optional[str] = None
    name: str
    path: str
    sha: str
    size: int
    url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SummarizeRequest(BaseModel):
    """Either the README text or a repository URL to fetch it from."""

    readme_content: Optional[str] = None
    github_url: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SummaryResponse(BaseModel):
    summary: str
    cool_facts: List[str] = Field(default_factory=list, alias="cool-facts")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)
