"""
Tests for batch_config -- the ``batch:`` configuration block.

Validates defaults, parsing of every key, the deprecated
``batch.initialize_schema`` alias and invalid-value rejection.
"""

import pytest

from batch_config import (
    DEFAULT_TABLE_PREFIX,
    BatchProperties,
    DatabaseInitializationMode,
    JdbcProperties,
    JobProperties,
    load_batch_properties,
    parse_batch_properties,
)
from batch_kernel.db.engine import Isolation
from batch_kernel.exceptions import BatchConfigurationError


class TestDefaults:
    def test_empty_document(self):
        props = parse_batch_properties({})
        assert props == BatchProperties()
        assert props.job.enabled is True
        assert props.job.name is None
        assert props.jdbc.initialize_schema is DatabaseInitializationMode.EMBEDDED

    def test_effective_defaults(self):
        jdbc = JdbcProperties()
        assert jdbc.effective_table_prefix == DEFAULT_TABLE_PREFIX == "BATCH_"
        assert jdbc.effective_isolation_level_for_create is Isolation.SERIALIZABLE

    def test_effective_options(self):
        props = BatchProperties(
            job=JobProperties(enabled=False, name="a,b"),
            jdbc=JdbcProperties(table_prefix="APP_", isolation_level_for_create=Isolation.READ_COMMITTED),
        )
        options = props.effective()
        assert options.enabled is False
        assert options.job_names == "a,b"
        assert options.table_prefix == "APP_"
        assert options.isolation_level is Isolation.READ_COMMITTED

    def test_effective_options_leave_unset_values_empty(self):
        options = BatchProperties().effective()
        assert options.enabled is True
        assert options.job_names is None
        assert options.table_prefix is None
        assert options.isolation_level is None


class TestJobProperties:
    def test_names_split_and_trimmed(self):
        assert JobProperties(name=" a, b ,,c ").names == ("a", "b", "c")

    def test_no_names(self):
        assert JobProperties().names == ()

    @pytest.mark.parametrize("raw", [False, "false", "off", "no", "0"])
    def test_disabled_spellings(self, raw):
        props = parse_batch_properties({"batch": {"job": {"enabled": raw}}})
        assert props.job.enabled is False

    def test_blank_name_is_none(self):
        props = parse_batch_properties({"batch": {"job": {"name": "  "}}})
        assert props.job.name is None

    def test_invalid_enabled(self):
        with pytest.raises(BatchConfigurationError) as exc_info:
            parse_batch_properties({"batch": {"job": {"enabled": "maybe"}}})
        assert exc_info.value.key == "batch.job.enabled"


class TestJdbcProperties:
    def test_all_keys(self):
        props = parse_batch_properties({
            "batch": {
                "jdbc": {
                    "url": "sqlite:///batch.db",
                    "table_prefix": "APP_BATCH_",
                    "isolation_level_for_create": "read committed",
                    "initialize_schema": "ALWAYS",
                },
            },
        })
        assert props.jdbc.url == "sqlite:///batch.db"
        assert props.jdbc.effective_table_prefix == "APP_BATCH_"
        assert props.jdbc.isolation_level_for_create is Isolation.READ_COMMITTED
        assert props.jdbc.initialize_schema is DatabaseInitializationMode.ALWAYS

    def test_empty_prefix_is_kept(self):
        props = parse_batch_properties({"batch": {"jdbc": {"table_prefix": ""}}})
        assert props.jdbc.effective_table_prefix == ""

    @pytest.mark.parametrize("raw", ["SERIALIZABLE", "serializable", "repeatable-read", "DEFAULT"])
    def test_isolation_spellings(self, raw):
        props = parse_batch_properties({"batch": {"jdbc": {"isolation_level_for_create": raw}}})
        assert isinstance(props.jdbc.isolation_level_for_create, Isolation)

    def test_invalid_isolation(self):
        with pytest.raises(BatchConfigurationError) as exc_info:
            parse_batch_properties({"batch": {"jdbc": {"isolation_level_for_create": "snapshot"}}})
        assert exc_info.value.key == "batch.jdbc.isolation_level_for_create"

    def test_invalid_mode(self):
        with pytest.raises(BatchConfigurationError):
            parse_batch_properties({"batch": {"jdbc": {"initialize_schema": "sometimes"}}})

    def test_section_must_be_mapping(self):
        with pytest.raises(BatchConfigurationError):
            parse_batch_properties({"batch": {"jdbc": "sqlite://"}})


class TestDeprecatedInitializeSchema:
    def test_legacy_key_used(self, captured_logs):
        props = parse_batch_properties({"batch": {"initialize_schema": "never"}})
        assert props.jdbc.initialize_schema is DatabaseInitializationMode.NEVER

        warnings = [r for r in captured_logs() if r["message"] == "deprecated_config_key"]
        assert len(warnings) == 1
        assert warnings[0]["key"] == "batch.initialize_schema"
        assert warnings[0]["replacement"] == "batch.jdbc.initialize_schema"

    def test_new_key_wins(self, captured_logs):
        props = parse_batch_properties({
            "batch": {
                "initialize_schema": "never",
                "jdbc": {"initialize_schema": "always"},
            },
        })
        assert props.jdbc.initialize_schema is DatabaseInitializationMode.ALWAYS
        assert not [r for r in captured_logs() if r["message"] == "deprecated_config_key"]


class TestLoadFromFile:
    def test_load_yaml(self, tmp_path, captured_logs):
        path = tmp_path / "batch.yaml"
        path.write_text(
            "batch:\n"
            "  job:\n"
            "    name: import_rates,close_day\n"
            "  jdbc:\n"
            "    table_prefix: APP_\n"
        )
        props = load_batch_properties(path)
        assert props.job.names == ("import_rates", "close_day")
        assert props.jdbc.effective_table_prefix == "APP_"

        loaded = [r for r in captured_logs() if r["message"] == "batch_properties_loaded"]
        assert loaded[0]["job_names"] == ["import_rates", "close_day"]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_batch_properties(path) == BatchProperties()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_batch_properties(tmp_path / "absent.yaml")
