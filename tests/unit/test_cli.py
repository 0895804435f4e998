"""
Unit tests for the CLI module.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from pgmeta import __version__
from pgmeta.cli import main
from pgmeta.schema.models import ById, ByName, ErrorKind, MetaResult


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI runs from reconfiguring the root logger."""
    with patch("pgmeta.cli.setup_logging"):
        yield


@pytest.fixture
def manager():
    """Mock ColumnManager handed to every column command."""
    return AsyncMock()


@pytest.fixture(autouse=True)
def with_manager(manager):
    """Run column operations against the mock manager instead of a pool."""
    async def fake_with_manager(config, operation):
        return await operation(manager)

    with patch("pgmeta.cli._with_manager", new=fake_with_manager):
        yield


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file for testing."""
    path = tmp_path / "pgmeta.yaml"
    path.write_text(yaml.safe_dump({
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "test",
            "user": "user",
            "password": "pass",
        },
        "columns": {"default_schema": "app", "default_limit": 50},
    }))
    return str(path)


class TestCLIMain:
    """Test main CLI group."""

    def test_cli_help(self, runner):
        """Test CLI help output."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "columns" in result.output

    def test_cli_version(self, runner):
        """Test CLI version output."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_columns_help(self, runner):
        result = runner.invoke(main, ["columns", "--help"])
        assert result.exit_code == 0
        for command in ("list", "get", "create", "update", "remove"):
            assert command in result.output


class TestInitCommand:
    """Test init command."""

    def test_init_default_output(self, runner):
        """Test init writes a loadable configuration."""
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["init"])

            assert result.exit_code == 0
            assert "Configuration file created" in result.output
            with open("pgmeta-config.yaml") as f:
                data = yaml.safe_load(f)
            assert data["database"]["host"] == "localhost"

    def test_init_file_exists_no_overwrite(self, runner):
        with runner.isolated_filesystem():
            with open("pgmeta-config.yaml", "w") as f:
                f.write("keep: me\n")

            result = runner.invoke(main, ["init"], input="n\n")

            assert result.exit_code == 0
            with open("pgmeta-config.yaml") as f:
                assert f.read() == "keep: me\n"


class TestValidateConfigCommand:
    """Test validate-config command."""

    def test_validate_config_valid_file(self, runner, temp_config_file):
        result = runner.invoke(main, ["validate-config", "--config", temp_config_file])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_config_invalid_file(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("database:\n  min_pool_size: 9\n  max_pool_size: 1\n")

        result = runner.invoke(main, ["validate-config", "--config", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_validate_config_file_not_exists(self, runner):
        result = runner.invoke(main, ["validate-config", "--config", "nonexistent.yaml"])
        assert result.exit_code != 0


class TestTestConnectionCommand:
    """Test test-connection command."""

    @patch("pgmeta.cli.ConnectionPool")
    def test_test_connection_success(self, mock_pool_class, runner, temp_config_file):
        pool = MagicMock()
        pool.test_connection = AsyncMock(return_value={
            "status": "connected",
            "database": "test",
            "user": "user",
            "version": "PostgreSQL 16.2",
        })
        mock_pool_class.return_value.__aenter__.return_value = pool

        result = runner.invoke(main, ["test-connection", "--config", temp_config_file])

        assert result.exit_code == 0
        assert "Connected to test as user" in result.output

    @patch("pgmeta.cli.ConnectionPool")
    def test_test_connection_failure(self, mock_pool_class, runner, temp_config_file):
        pool = MagicMock()
        pool.test_connection = AsyncMock(return_value={"status": "failed", "error": "timeout"})
        mock_pool_class.return_value.__aenter__.return_value = pool

        result = runner.invoke(main, ["test-connection", "--config", temp_config_file])

        assert result.exit_code == 1
        assert "Connection failed: timeout" in result.output


class TestColumnsListCommand:
    """Test columns list command."""

    def test_list_table_output(self, runner, manager, make_column):
        manager.list.return_value = MetaResult.success([make_column()])

        result = runner.invoke(main, ["columns", "list"])

        assert result.exit_code == 0
        assert "email" in result.output
        manager.list.assert_called_once_with(include_system_schemas=False, limit=None, offset=None)

    def test_list_json_output(self, runner, manager, make_column):
        manager.list.return_value = MetaResult.success(
            [make_column(), make_column(ordinal_position=3, name="age")]
        )

        result = runner.invoke(main, ["columns", "list", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert [column["id"] for column in payload] == ["16384.2", "16384.3"]
        assert payload[0]["schema"] == "public"

    def test_list_options(self, runner, manager):
        manager.list.return_value = MetaResult.success([])

        result = runner.invoke(
            main,
            ["columns", "list", "--include-system-schemas", "--limit", "5", "--offset", "10"],
        )

        assert result.exit_code == 0
        manager.list.assert_called_once_with(include_system_schemas=True, limit=5, offset=10)

    def test_list_uses_config_defaults(self, runner, manager, temp_config_file):
        manager.list.return_value = MetaResult.success([])

        result = runner.invoke(main, ["columns", "--config", temp_config_file, "list"])

        assert result.exit_code == 0
        manager.list.assert_called_once_with(include_system_schemas=False, limit=50, offset=None)

    def test_list_negative_limit_rejected(self, runner, manager):
        result = runner.invoke(main, ["columns", "list", "--limit", "-1"])

        assert result.exit_code != 0
        manager.list.assert_not_called()

    def test_list_error(self, runner, manager):
        manager.list.return_value = MetaResult.failure("permission denied", ErrorKind.UPSTREAM)

        result = runner.invoke(main, ["columns", "list"])

        assert result.exit_code == 1
        assert "upstream: permission denied" in result.output


class TestColumnsGetCommand:
    """Test columns get command."""

    def test_get_by_id(self, runner, manager, make_column):
        manager.retrieve.return_value = MetaResult.success(make_column())

        result = runner.invoke(main, ["columns", "get", "--id", "16384.2", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["name"] == "email"
        manager.retrieve.assert_called_once_with(ById("16384.2"))

    def test_get_by_name_uses_default_schema(self, runner, manager, make_column, temp_config_file):
        manager.retrieve.return_value = MetaResult.success(make_column())

        result = runner.invoke(
            main, ["columns", "--config", temp_config_file, "get", "--name", "email", "--table", "users"]
        )

        assert result.exit_code == 0
        manager.retrieve.assert_called_once_with(ByName(name="email", table="users", schema="app"))

    def test_get_with_id_and_name_rejected(self, runner, manager):
        result = runner.invoke(
            main, ["columns", "get", "--id", "1.2", "--name", "email", "--table", "users"]
        )

        assert result.exit_code == 1
        assert "Invalid parameters on column retrieve" in result.output
        manager.retrieve.assert_not_called()

    def test_get_not_found(self, runner, manager):
        manager.retrieve.return_value = MetaResult.failure(
            "Cannot find a column with ID 1.9", ErrorKind.NOT_FOUND
        )

        result = runner.invoke(main, ["columns", "get", "--id", "1.9"])

        assert result.exit_code == 1
        assert "not_found" in result.output


class TestColumnsCreateCommand:
    """Test columns create command."""

    def test_create_builds_spec(self, runner, manager, make_column):
        manager.create.return_value = MetaResult.success(make_column(name="age"))

        result = runner.invoke(main, [
            "columns", "create",
            "--table-id", "16384",
            "--name", "age",
            "--type", "int4",
            "--default", "18",
            "--not-null",
            "--comment", "Age in years",
        ])

        assert result.exit_code == 0
        spec = manager.create.call_args.args[0]
        assert spec.table_id == 16384
        assert spec.type == "int4"
        assert spec.default_value == 18
        assert spec.is_nullable is False
        assert spec.comment == "Age in years"

    def test_create_expression_default_kept_as_text(self, runner, manager, make_column):
        manager.create.return_value = MetaResult.success(make_column())

        runner.invoke(main, [
            "columns", "create", "--table-id", "1", "--name", "created_at",
            "--type", "timestamptz", "--default", "now()", "--default-format", "expression",
        ])

        spec = manager.create.call_args.args[0]
        assert spec.default_value == "now()"
        assert spec.default_value_format == "expression"

    def test_create_without_default(self, runner, manager, make_column):
        manager.create.return_value = MetaResult.success(make_column())

        runner.invoke(main, ["columns", "create", "--table-id", "1", "--name", "x", "--type", "text"])

        spec = manager.create.call_args.args[0]
        assert not spec.has_default
        assert spec.is_nullable is None

    def test_create_error(self, runner, manager):
        manager.create.return_value = MetaResult.failure(
            "Columns cannot both be identity and have a default value", ErrorKind.VALIDATION
        )

        result = runner.invoke(main, [
            "columns", "create", "--table-id", "1", "--name", "id",
            "--type", "int8", "--identity", "--default", "1",
        ])

        assert result.exit_code == 1
        assert "validation" in result.output


class TestColumnsUpdateCommand:
    """Test columns update command."""

    def test_update_passes_only_given_options(self, runner, manager, make_column):
        manager.update.return_value = MetaResult.success(make_column())

        result = runner.invoke(main, ["columns", "update", "16384.2", "--not-null", "--no-unique"])

        assert result.exit_code == 0
        column_id, patch_arg = manager.update.call_args.args
        assert column_id == "16384.2"
        assert patch_arg.model_fields_set == {"is_nullable", "is_unique"}
        assert patch_arg.is_nullable is False
        assert patch_arg.is_unique is False

    def test_update_clear_comment(self, runner, manager, make_column):
        manager.update.return_value = MetaResult.success(make_column())

        runner.invoke(main, ["columns", "update", "16384.2", "--clear-comment"])

        patch_arg = manager.update.call_args.args[1]
        assert patch_arg.supplied("comment")
        assert patch_arg.comment is None

    def test_update_drop_default_and_rename(self, runner, manager, make_column):
        manager.update.return_value = MetaResult.success(make_column())

        runner.invoke(main, ["columns", "update", "16384.2", "--drop-default", "--name", "contact"])

        patch_arg = manager.update.call_args.args[1]
        assert patch_arg.drop_default is True
        assert patch_arg.name == "contact"
        assert not patch_arg.supplied("default_value")

    def test_update_no_identity(self, runner, manager, make_column):
        manager.update.return_value = MetaResult.success(make_column())

        runner.invoke(main, ["columns", "update", "16384.2", "--no-identity"])

        patch_arg = manager.update.call_args.args[1]
        assert patch_arg.supplied("is_identity")
        assert patch_arg.is_identity is False


class TestColumnsRemoveCommand:
    """Test columns remove command."""

    def test_remove_with_yes(self, runner, manager, make_column):
        manager.remove.return_value = MetaResult.success(make_column())

        result = runner.invoke(main, ["columns", "remove", "16384.2", "--yes", "--cascade"])

        assert result.exit_code == 0
        manager.remove.assert_called_once_with("16384.2", cascade=True)

    def test_remove_declined(self, runner, manager):
        result = runner.invoke(main, ["columns", "remove", "16384.2"], input="n\n")

        assert result.exit_code == 0
        manager.remove.assert_not_called()

    def test_remove_confirmed(self, runner, manager, make_column):
        manager.remove.return_value = MetaResult.success(make_column())

        result = runner.invoke(main, ["columns", "remove", "16384.2"], input="y\n")

        assert result.exit_code == 0
        manager.remove.assert_called_once_with("16384.2", cascade=False)
