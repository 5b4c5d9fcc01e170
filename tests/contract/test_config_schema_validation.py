from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from sheetbind.config.loader import SCHEMA_PATH

"""Config schema contract test."""


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_config_schema_is_valid_draft7(schema):
    jsonschema.Draft7Validator.check_schema(schema)


def test_config_schema_valid_example(schema):
    config = {
        "source_directory": "./data",
        "max_error_rows": 5,
        "has_header": True,
        "track_records": False,
        "ignored_name_chars": "-_ .",
        "truncate_name_chars": "([",
        "default_resolver": None,
        "trim_policy": "keep",
        "engine": "pandas",
        "keep_na_strings": ["NA"],
        "sheets": {
            "Orders": {
                "target": "app.records:Order",
                "max_error_rows": 0,
                "columns": {
                    "order_no": {"name": "Order No."},
                    "price": {"index": 3, "custom_format": "0.00"},
                    "notes": {"ignore": True},
                    "region": {"use_last_non_blank": True},
                    "customer": {"resolver": "upper"},
                    "ordered_on": {"builtin_format": 14},
                },
            },
        },
    }
    jsonschema.validate(config, schema)


def test_config_schema_minimal_valid_config(schema):
    """Only the required keys."""
    config = {"source_directory": "./data", "sheets": {"Sheet1": {"target": "records:Row"}}}
    jsonschema.validate(config, schema)


def test_config_schema_validates_from_sample_yaml(schema, sample_config_yaml: str):
    """The sample config from conftest.py validates against the schema."""
    jsonschema.validate(yaml.safe_load(sample_config_yaml), schema)


@pytest.mark.parametrize(
    "config",
    [
        {"sheets": {"Orders": {"target": "m:Order"}}},  # missing source_directory
        {"source_directory": "./data"},  # missing sheets
        {"source_directory": "./data", "sheets": {}},  # no sheet
        {"source_directory": "./data", "sheets": {"Orders": {}}},  # missing target
        {"source_directory": "./data", "sheets": {"Orders": {"target": "Order"}}},  # no module part
        {"source_directory": "./data", "sheets": {"Orders": {"target": "m:Order"}}, "extra_field": 1},
        {"source_directory": "./data", "sheets": {"Orders": {"target": "m:Order", "table": "orders"}}},
        {"source_directory": "./data", "sheets": {"Orders": {"target": "m:Order"}}, "engine": "xlrd"},
        {"source_directory": "./data", "sheets": {"Orders": {"target": "m:Order"}}, "trim_policy": "drop"},
        {
            "source_directory": "./data",
            "sheets": {"Orders": {"target": "m:Order", "columns": {"price": {"index": -1}}}},
        },
        {
            "source_directory": "./data",
            "sheets": {"Orders": {"target": "m:Order", "columns": {"price": {"width": 10}}}},
        },
    ],
)
def test_config_schema_rejects_invalid(schema, config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, schema)
