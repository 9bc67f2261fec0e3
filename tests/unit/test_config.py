"""Unit tests for configuration loading."""

from pathlib import Path

import pytest

from redeployer.utils.config_loader import ConfigLoaderError, load_settings


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults_without_environment(self) -> None:
        """Test loading with an empty environment."""
        settings = load_settings({})

        assert settings.webhook_secret is None
        assert settings.deployment_name == "simple-budget"
        assert settings.enable_rollout_trigger is True

    def test_secret_from_environment(self) -> None:
        """Test that SECRET is loaded as bytes."""
        settings = load_settings({"SECRET": "s3cr3t"})

        assert settings.webhook_secret == b"s3cr3t"

    def test_empty_secret_is_missing(self) -> None:
        """Test that an empty SECRET counts as not configured."""
        settings = load_settings({"SECRET": ""})

        assert settings.has_secret is False

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that os.environ is used when no mapping is given."""
        monkeypatch.setenv("SECRET", "from-env")
        monkeypatch.setenv("DEPLOYMENT_NAME", "api")

        settings = load_settings()

        assert settings.webhook_secret == b"from-env"
        assert settings.deployment_name == "api"

    def test_environment_overrides(self) -> None:
        """Test typed conversion of environment values."""
        settings = load_settings(
            {
                "DEPLOYMENT_NAME": "api",
                "DEPLOYMENT_NAMESPACE": "apps",
                "RELEASE_LABEL": "restartedAt",
                "WORKFLOW_NAME": "release",
                "ENABLE_ROLLOUT_TRIGGER": "false",
                "CLUSTER_TIMEOUT_SECONDS": "2.5",
                "PORT": "8080",
            }
        )

        assert settings.deployment_name == "api"
        assert settings.namespace == "apps"
        assert settings.label_key == "restartedAt"
        assert settings.workflow_name == "release"
        assert settings.enable_rollout_trigger is False
        assert settings.cluster_timeout_seconds == 2.5
        assert settings.port == 8080

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("ENABLE_ROLLOUT_TRIGGER", "maybe"),
            ("CLUSTER_TIMEOUT_SECONDS", "soon"),
            ("PORT", "http"),
        ],
    )
    def test_invalid_environment_value(self, var: str, value: str) -> None:
        """Test that unparseable values name the variable."""
        with pytest.raises(ConfigLoaderError, match=var):
            load_settings({var: value})

    def test_out_of_range_value(self) -> None:
        """Test that model validation errors become ConfigLoaderError."""
        with pytest.raises(ConfigLoaderError, match="cluster_timeout_seconds"):
            load_settings({"CLUSTER_TIMEOUT_SECONDS": "0"})


class TestConfigFile:
    """Tests for the optional YAML config file."""

    def test_file_values(self, tmp_path: Path) -> None:
        """Test loading settings from a YAML file."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text(
            "deployment_name: api\nnamespace: apps\nenable_rollout_trigger: false\n"
        )

        settings = load_settings({"REDEPLOYER_CONFIG": str(config_file)})

        assert settings.deployment_name == "api"
        assert settings.namespace == "apps"
        assert settings.enable_rollout_trigger is False

    def test_environment_wins_over_file(self, tmp_path: Path) -> None:
        """Test that environment variables override file values."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("deployment_name: api\n")

        settings = load_settings(
            {"REDEPLOYER_CONFIG": str(config_file), "DEPLOYMENT_NAME": "worker"}
        )

        assert settings.deployment_name == "worker"

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty file yields defaults."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("\n")

        settings = load_settings({"REDEPLOYER_CONFIG": str(config_file)})

        assert settings.deployment_name == "simple-budget"

    def test_secret_not_accepted_from_file(self, tmp_path: Path) -> None:
        """Test that the secret can only come from the environment."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("webhook_secret: leaked\n")

        with pytest.raises(ConfigLoaderError, match="webhook_secret"):
            load_settings({"REDEPLOYER_CONFIG": str(config_file)})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that invalid YAML raises ConfigLoaderError."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("deployment_name: [unclosed\n")

        with pytest.raises(ConfigLoaderError, match="Failed to parse"):
            load_settings({"REDEPLOYER_CONFIG": str(config_file)})

    def test_non_mapping(self, tmp_path: Path) -> None:
        """Test that a YAML list is rejected."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigLoaderError, match="mapping"):
            load_settings({"REDEPLOYER_CONFIG": str(config_file)})

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises ConfigLoaderError."""
        with pytest.raises(ConfigLoaderError, match="Failed to read"):
            load_settings({"REDEPLOYER_CONFIG": str(tmp_path / "absent.yml")})

    def test_wrong_type_in_file(self, tmp_path: Path) -> None:
        """Test that file values failing validation raise ConfigLoaderError."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("port: -5\n")

        with pytest.raises(ConfigLoaderError, match="port"):
            load_settings({"REDEPLOYER_CONFIG": str(config_file)})

    @pytest.mark.parametrize(
        ("line", "field"),
        [
            ('enable_rollout_trigger: "false"\n', "enable_rollout_trigger"),
            ("namespace: 123\n", "namespace"),
            ("label_key: 5\n", "label_key"),
            ('cluster_timeout_seconds: "2"\n', "cluster_timeout_seconds"),
            ("port: true\n", "port"),
        ],
    )
    def test_mistyped_file_value(self, tmp_path: Path, line: str, field: str) -> None:
        """Test that file values of the wrong YAML type are rejected, not coerced."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text(line)

        with pytest.raises(ConfigLoaderError, match=field):
            load_settings({"REDEPLOYER_CONFIG": str(config_file)})

    def test_integer_timeout_in_file(self, tmp_path: Path) -> None:
        """Test that a whole-number timeout is accepted as a float field."""
        config_file = tmp_path / "redeployer.yml"
        config_file.write_text("cluster_timeout_seconds: 3\n")

        settings = load_settings({"REDEPLOYER_CONFIG": str(config_file)})

        assert settings.cluster_timeout_seconds == 3
