import pytest

from askstream.provider.reasoning import (
    DEFAULT_MIN_OUTPUT_TOKENS,
    HIGH_REASONING_MIN_OUTPUT_TOKENS,
    build_reasoning_payload,
    build_temperature_payload,
    build_token_payload,
    compute_effective_max_tokens,
    is_reasoning_model,
    normalize_reasoning_effort,
)


def test_reasoning_family_is_case_insensitive_prefix():
    assert is_reasoning_model("gpt-5")
    assert is_reasoning_model("GPT-5-mini")
    assert not is_reasoning_model("gpt-4.1")
    assert not is_reasoning_model(None)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("minimal", "none"),
        ("x-high", "xhigh"),
        ("X_HIGH", "xhigh"),
        ("x high", "xhigh"),
        (" High ", "high"),
        ("none", "none"),
        ("turbo", None),
        (None, None),
        (3, None),
    ],
)
def test_normalize_reasoning_effort(raw, expected):
    assert normalize_reasoning_effort(raw) == expected


def test_reasoning_payload_only_for_reasoning_family():
    assert build_reasoning_payload("gpt-5", "minimal") == {"reasoning": {"effort": "none"}}
    assert build_reasoning_payload("gpt-5", "bogus") == {}
    assert build_reasoning_payload("gpt-4o", "high") == {}


def test_temperature_omitted_for_reasoning_models_and_non_numbers():
    assert build_temperature_payload("gpt-4o", 0.7) == {"temperature": 0.7}
    assert build_temperature_payload("gpt-5", 0.7) == {}
    assert build_temperature_payload("gpt-4o", "0.7") == {}
    assert build_temperature_payload("gpt-4o", None) == {}


def test_token_payload_field_selection():
    assert build_token_payload("gpt-4o", 100) == {"max_tokens": 100}
    assert build_token_payload("gpt-5", 100) == {"max_completion_tokens": 100}
    assert build_token_payload("gpt-5", 100, force_legacy_max_tokens=True) == {"max_tokens": 100}
    assert build_token_payload("gpt-5", 0) == {}


@pytest.mark.parametrize(
    "model,effort,configured,expected",
    [
        ("gpt-5", "high", 2048, HIGH_REASONING_MIN_OUTPUT_TOKENS),
        ("gpt-5", "xhigh", 16000, 16000),
        ("gpt-5", "medium", 2048, DEFAULT_MIN_OUTPUT_TOKENS),
        ("gpt-4o", "high", 2048, DEFAULT_MIN_OUTPUT_TOKENS),
        ("gpt-4o", None, 6000, 6000),
        ("gpt-4o", None, None, DEFAULT_MIN_OUTPUT_TOKENS),
        ("gpt-4o", None, "abc", DEFAULT_MIN_OUTPUT_TOKENS),
        ("gpt-4o", None, -5, DEFAULT_MIN_OUTPUT_TOKENS),
    ],
)
def test_compute_effective_max_tokens(model, effort, configured, expected):
    assert compute_effective_max_tokens(model, effort, configured) == expected


@pytest.mark.parametrize("value", ["none", "low", "medium", "high", "xhigh"])
def test_normalization_is_idempotent(value):
    assert normalize_reasoning_effort(normalize_reasoning_effort(value)) == value


@pytest.mark.parametrize("value", ["Minimal", "MINIMAL", " minimal "])
def test_minimal_spellings_map_to_none(value):
    assert normalize_reasoning_effort(value) == "none"


def test_xhigh_scenarios_without_configured_ceiling():
    assert compute_effective_max_tokens("gpt-5-mini", "xhigh", None) == 8192
    assert compute_effective_max_tokens("gpt-4.1", "xhigh", None) == 4096
    assert build_reasoning_payload("gpt-4.1", "xhigh") == {}
