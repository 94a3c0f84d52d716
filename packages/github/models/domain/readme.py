from typing import List, Optional
from pydantic import BaseModel


class RepositoryRef(BaseModel):
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class Readme(BaseModel):
    """A repository README with its content decoded to text."""

    content: str
    encoding: Optional[str] = None
    name: str
    path: str
    sha: str
    size: int
    url: Optional[str] = None  # html_url on github.com


class RepositorySummary(BaseModel):
    summary: str
    cool_facts: List[str] = []
