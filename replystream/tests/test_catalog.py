"""Tests for the model catalog and request building."""

import pytest

from replystream.core.events import HistoryMessage
from replystream.errors import ConfigurationError
from replystream.models.catalog import (
    LLMDescriptor,
    LLMOptions,
    ModelCatalog,
    SourceSetup,
    api_access_from_setup,
    build_chat_request,
)


def _llm(**options) -> LLMDescriptor:
    base = {"llm_ref": "gpt-4o", "llm_temperature": 0.7, "llm_response_tokens": 256}
    base.update(options)
    return LLMDescriptor(id="oai-gpt4o", source=SourceSetup(oai_key="sk-1", oai_host="api.example"), options=LLMOptions(**base))


def test_api_access_drops_empty_values():
    access = api_access_from_setup(SourceSetup(oai_host="h", oai_key="", oai_org="org", heli_key=""))
    assert access.model_dump(exclude_none=True) == {"api_host": "h", "api_organization_id": "org"}


def test_build_request_keeps_only_role_and_content():
    history = [
        HistoryMessage(id="1", role="system", text="Be brief", purpose_id="Generic", edited=True),
        HistoryMessage(id="2", role="user", text="Hi", typing=False),
    ]
    req = build_chat_request(_llm(), history)
    payload = req.to_payload()
    assert payload["model"] == "gpt-4o"
    assert payload["temperature"] == 0.7
    assert payload["max_tokens"] == 256
    assert payload["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hi"},
    ]
    assert payload["api"] == {"api_host": "api.example", "api_key": "sk-1"}


@pytest.mark.parametrize(
    "missing",
    [{"llm_ref": None}, {"llm_ref": ""}, {"llm_temperature": None}, {"llm_response_tokens": None}],
)
def test_build_request_fails_fast_on_incomplete_options(missing):
    with pytest.raises(ConfigurationError, match="oai-gpt4o"):
        build_chat_request(_llm(**missing), [])


def test_temperature_zero_is_valid():
    assert build_chat_request(_llm(llm_temperature=0.0), []).temperature == 0.0


def test_catalog_find_or_raise():
    catalog = ModelCatalog([_llm()])
    assert catalog.find_or_raise("oai-gpt4o").options.llm_ref == "gpt-4o"
    assert catalog.ids() == ["oai-gpt4o"]
    with pytest.raises(ConfigurationError, match="Unknown model"):
        catalog.find_or_raise("nope")
