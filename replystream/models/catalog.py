"""Model catalog: which LLMs exist, how to reach them, and the request sent for a turn."""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from replystream.core.events import ChatMessage, HistoryMessage
from replystream.errors import ConfigurationError


class SourceSetup(BaseModel):
    """Upstream OpenAI-compatible access. Empty values are not forwarded."""

    oai_host: str = ""
    oai_key: str = ""
    oai_org: str = ""
    heli_key: str = ""


class LLMOptions(BaseModel):
    llm_ref: str | None = Field(default=None, description="Upstream model id")
    llm_temperature: float | None = None
    llm_response_tokens: int | None = None


class LLMDescriptor(BaseModel):
    id: str
    label: str = ""
    source: SourceSetup = Field(default_factory=SourceSetup)
    options: LLMOptions = Field(default_factory=LLMOptions)


class ApiAccess(BaseModel):
    api_host: str | None = None
    api_key: str | None = None
    api_organization_id: str | None = None
    helicone_key: str | None = None


class ChatRequest(BaseModel):
    """Body POSTed to the stream-chat endpoint."""

    api: ApiAccess
    model: str
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int

    def to_payload(self) -> dict:
        data = self.model_dump(exclude={"api"})
        data["api"] = self.api.model_dump(exclude_none=True)
        return data


def api_access_from_setup(setup: SourceSetup) -> ApiAccess:
    return ApiAccess(
        api_host=setup.oai_host or None,
        api_key=setup.oai_key or None,
        api_organization_id=setup.oai_org or None,
        helicone_key=setup.heli_key or None,
    )


class ModelCatalog:
    """Known LLMs by id."""

    def __init__(self, llms: Iterable[LLMDescriptor] = ()) -> None:
        self._llms: dict[str, LLMDescriptor] = {}
        for llm in llms:
            self.add(llm)

    def add(self, llm: LLMDescriptor) -> None:
        self._llms[llm.id] = llm

    def ids(self) -> list[str]:
        return list(self._llms)

    def find_or_raise(self, llm_id: str) -> LLMDescriptor:
        llm = self._llms.get(llm_id)
        if llm is None:
            raise ConfigurationError(f"Unknown model {llm_id!r}")
        return llm


def build_chat_request(llm: LLMDescriptor, history: Iterable[HistoryMessage]) -> ChatRequest:
    """Request for one turn. Fails before any I/O when the model options are incomplete."""
    opts = llm.options
    if not opts.llm_ref or opts.llm_temperature is None or opts.llm_response_tokens is None:
        raise ConfigurationError(f"Error in OpenAI configuration for model {llm.id}")
    return ChatRequest(
        api=api_access_from_setup(llm.source),
        model=opts.llm_ref,
        messages=[m.to_wire() for m in history],
        temperature=opts.llm_temperature,
        max_tokens=opts.llm_response_tokens,
    )
