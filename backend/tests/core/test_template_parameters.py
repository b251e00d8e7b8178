"""Template Parameters: defaults, substitution and value validation."""

from hive.core.template_parameters import (
    extract_variables, get_default_values, get_parameters_from_settings,
    substitute_variables, validate_parameter_values,
)

PARAMS = [
    {"key": "company", "label": "Company", "type": "text", "required": True, "max_length": 10},
    {"key": "budget", "label": "Budget", "type": "number", "min": 100, "max": 1000},
    {"key": "tone", "label": "Tone", "type": "select", "options": ["formal", "casual"]},
    {"key": "verbose", "label": "Verbose", "type": "boolean"},
]


def test_parameters_read_from_settings_and_malformed_entries_dropped():
    settings = {"parameters": [*PARAMS, {"key": "x"}, "junk"]}
    assert get_parameters_from_settings(settings) == PARAMS
    assert get_parameters_from_settings(None) == []
    assert get_parameters_from_settings({"parameters": "nope"}) == []


def test_default_values_by_type():
    assert get_default_values(PARAMS) == {
        "company": "", "budget": 100, "tone": "", "verbose": False,
    }


def test_substitute_only_known_keys():
    text = "Write for {{company}} in a {{tone}} voice about {{topic}}."
    result = substitute_variables(text, {"company": "Acme", "tone": "formal"})
    assert result == "Write for Acme in a formal voice about {{topic}}."


def test_substitute_formats_booleans_and_whole_floats():
    assert substitute_variables("{{a}}/{{b}}", {"a": True, "b": 3.0}) == "true/3"


def test_extract_variables_deduplicates_in_order():
    assert extract_variables("{{b}} {{a}} {{b}}") == ["b", "a"]


def test_validation_passes_for_good_values():
    values = {"company": "Acme", "budget": "500", "tone": "casual", "verbose": True}
    assert validate_parameter_values(PARAMS, values) == {}


def test_validation_reports_one_error_per_key():
    values = {"company": "", "budget": 5000, "tone": "angry"}
    errors = validate_parameter_values(PARAMS, values)
    assert errors == {
        "company": "Company is required",
        "budget": "Budget must be at most 1000",
        "tone": "Tone must be one of: formal, casual",
    }


def test_validation_number_and_length():
    errors = validate_parameter_values(
        PARAMS, {"company": "A very long name", "budget": "lots"},
    )
    assert errors["company"] == "Company must be at most 10 characters"
    assert errors["budget"] == "Budget must be a number"
