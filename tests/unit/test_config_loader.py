from __future__ import annotations
import pytest
from pathlib import Path

from sheetbind import errors
from sheetbind.config.loader import ConfigError, load_config, load_target, resolve_config_path
from sheetbind.models.config_models import ColumnBindingConfig
from sample_records import Order


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert list(cfg.sheets) == ["Orders", "Customers"]
    assert cfg.sheets["Orders"].target == "sample_records:Order"
    assert cfg.sheets["Customers"].columns == (ColumnBindingConfig(field="name", name="Customer Name"),)
    assert cfg.max_error_rows == 10
    assert cfg.has_header is True
    assert cfg.trim_policy == "clear"
    assert cfg.engine == "openpyxl"


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(missing)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("sheets: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(write_config)


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("source_directory: ./data\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_invalid_target(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("sample_records:Order", "not a target")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "at sheets/Orders/target" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    # add extra field that should be rejected by additionalProperties: false
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_options(write_config: Path):
    write_config.write_text(
        """source_directory: ./data
has_header: false
track_records: false
trim_policy: keep
engine: pandas
keep_na_strings: ["NA"]
ignored_name_chars: "-_"
truncate_name_chars: "("
default_resolver: catch_all
sheets:
  Orders:
    target: sample_records:Order
    max_error_rows: 0
    columns:
      price:
        index: 3
        builtin_format: 4
      region:
        use_last_non_blank: true
""",
        encoding="utf-8",
    )
    cfg = load_config(write_config)
    assert cfg.has_header is False and cfg.track_records is False
    assert cfg.trim_policy == "keep" and cfg.engine == "pandas"
    assert cfg.keep_na_strings == ["NA"]
    assert cfg.ignored_name_chars == ("-", "_")
    assert cfg.truncate_name_chars == ("(",)
    assert cfg.default_resolver == "catch_all"
    sheet = cfg.sheets["Orders"]
    assert cfg.max_error_rows_for(sheet) == 0
    price, region = sheet.columns
    assert (price.field, price.index, price.builtin_format) == ("price", 3, 4)
    assert region.use_last_non_blank is True


def test_source_directory_env_override(write_config: Path, monkeypatch):
    monkeypatch.setenv("SHEETBIND_SOURCE_DIR", "/elsewhere")
    assert load_config(write_config).source_directory == "/elsewhere"


def test_resolve_config_path(monkeypatch):
    monkeypatch.delenv("SHEETBIND_CONFIG", raising=False)
    assert resolve_config_path(None) == Path("config/sheetbind.yml")
    monkeypatch.setenv("SHEETBIND_CONFIG", "env.yml")
    assert resolve_config_path(None) == Path("env.yml")
    assert resolve_config_path("cli.yml") == Path("cli.yml")


def test_load_target():
    assert load_target("sample_records:Order") is Order
    with pytest.raises(ConfigError, match="module:Class"):
        load_target("sample_records")
    with pytest.raises(ConfigError, match="cannot import"):
        load_target("no_such_module_xyz:Thing")
    with pytest.raises(ConfigError, match="not a class"):
        load_target("sample_records:column")


def test_config_error_is_a_sheetbind_error():
    assert ConfigError is errors.ConfigError
    assert issubclass(ConfigError, errors.SheetBindError)
    assert errors.error_type_name(ConfigError("x")) == "CONFIG_ERROR"
