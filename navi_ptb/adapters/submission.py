# /navi_ptb/adapters/submission.py
# Interface to the signing / submission collaborator. The composer only
# produces units; it never calls this itself.
from abc import ABC, abstractmethod
from typing import Any, Dict

from pydantic import BaseModel, Field

from navi_ptb.ptb.unit import TransactionUnit


class SubmissionResult(BaseModel):
    digest: str
    success: bool
    # Protocol-level rejections (unhealthy position, stale oracle...) are
    # reported here verbatim
    error: str | None = None
    effects: Dict[str, Any] = Field(default_factory=dict)


class Submitter(ABC):
    @abstractmethod
    async def sign_and_submit(self, unit: TransactionUnit, signer: Any) -> SubmissionResult:
        """Signs the validated unit and waits for local execution."""
        raise NotImplementedError
