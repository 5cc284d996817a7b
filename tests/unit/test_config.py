"""
Tests for configuration loading and validation.
"""

import json
from datetime import timedelta
from pathlib import Path

import pytest

from pagewatch.config import (
    DedupBackend,
    LogFormat,
    WatcherSettings,
    load_config,
    load_settings,
    parse_period,
    parse_resources,
)
from pagewatch.exceptions import ConfigError
from pagewatch.models import ExtractionRule

TOML_CONFIG = """
[[resources]]
name = "shop"
url = "https://shop.example.com/p1"
period = "5m"

[resources.targets]
name = "Product"
path = "//li[@class='Product']"

[resources.targets.then.Name]
path = "span[@class='Name']"
extract = "Text"

[resources.targets.then.Price]
path = "span[@class='Price']"
extract = "Text"

[resources.continuation]
ref = "//a[@class='next']/@href"
"""

YAML_CONFIG = """
resources:
  - url: https://news.example.com/
    period: {secs: 90, nanos: 500000000}
    targets:
      name: Headline
      path: //h2
      extract: text
"""


def valid_resource(**overrides):
    raw = {"url": "https://example.com/", "period": 60}
    raw.update(overrides)
    return {"resources": [raw]}


class TestWatcherSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self) -> None:
        settings = WatcherSettings()

        assert settings.config_path == "./config"
        assert settings.dedup_backend == DedupBackend.SQLITE
        assert settings.log_format == LogFormat.JSON
        assert settings.metrics_port == 0

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAGEWATCH_DEDUP_BACKEND", "redis")
        monkeypatch.setenv("PAGEWATCH_SHUTDOWN_GRACE_SECONDS", "2.5")

        settings = WatcherSettings()

        assert settings.dedup_backend == DedupBackend.REDIS
        assert settings.shutdown_grace_seconds == 2.5

    def test_overrides_skip_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAGEWATCH_DATABASE_PATH", "/var/lib/pagewatch.sqlite")

        settings = load_settings(database_path=None, config_path="./resources.toml")

        assert settings.database_path == "/var/lib/pagewatch.sqlite"
        assert settings.config_path == "./resources.toml"


class TestLoadConfig:
    """Tests for resource file loading."""

    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "resources.toml"
        path.write_text(TOML_CONFIG)

        config = load_config(path)

        [resource] = config.resources
        assert resource.name == "shop"
        assert resource.period == timedelta(minutes=5)
        assert resource.targets is not None
        assert resource.targets.name == "Product"
        assert list(resource.targets.then) == ["Name", "Price"]
        assert resource.targets.then["Name"].extract == ExtractionRule.TEXT
        assert resource.continuation is not None
        assert resource.continuation.ref == "//a[@class='next']/@href"

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "resources.yaml"
        path.write_text(YAML_CONFIG)

        [resource] = load_config(path).resources

        assert resource.name == "https://news.example.com/"
        assert resource.period == timedelta(seconds=90, milliseconds=500)
        assert resource.targets is not None
        assert resource.targets.extract == ExtractionRule.TEXT
        assert resource.targets.then is None
        assert resource.continuation is None

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "resources.json"
        path.write_text(json.dumps(valid_resource(name="plain")))

        [resource] = load_config(path).resources

        assert resource.name == "plain"
        assert resource.targets is None

    def test_suffix_lookup(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text(YAML_CONFIG)
        (tmp_path / "config.json").write_text(json.dumps(valid_resource()))

        config = load_config(tmp_path / "config")

        assert config.source == tmp_path / "config.yaml"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="no configuration file"):
            load_config(tmp_path / "config")

    def test_syntax_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[[resources]\n")

        with pytest.raises(ConfigError, match="cannot parse"):
            load_config(path)

    def test_empty_resource_list(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"resources": []}')

        assert load_config(path).resources == []


class TestValidation:
    """Tests for resource validation errors."""

    def test_invalid_url(self) -> None:
        with pytest.raises(ConfigError, match=r"resources\[0\]\.url"):
            parse_resources(valid_resource(url="ftp://example.com/"))

    def test_missing_period(self) -> None:
        with pytest.raises(ConfigError, match="Field required") as info:
            parse_resources({"resources": [{"url": "https://example.com/"}]})
        assert info.value.location == "resources[0].period"

    def test_zero_period(self) -> None:
        with pytest.raises(ConfigError, match="must be positive"):
            parse_resources(valid_resource(period=0))

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Extra inputs are not permitted") as info:
            parse_resources(valid_resource(interval=5))
        assert info.value.location == "resources[0].interval"

    def test_xpath_syntax_error(self) -> None:
        targets = {"name": "Broken", "path": "//li[", "extract": "Text"}
        with pytest.raises(ConfigError, match="failed to parse XPath") as info:
            parse_resources(valid_resource(targets=targets))
        assert info.value.location == "resources[0].targets.path"

    def test_continuation_xpath_error(self) -> None:
        with pytest.raises(ConfigError, match="failed to parse XPath"):
            parse_resources(valid_resource(continuation={"ref": "//a[@href"}))

    def test_unknown_extraction_rule(self) -> None:
        targets = {"name": "T", "path": "//p", "extract": "Html"}
        with pytest.raises(ConfigError, match="unknown extraction rule"):
            parse_resources(valid_resource(targets=targets))

    def test_reserved_target_name(self) -> None:
        targets = {"name": "T", "path": "//p", "then": {"$value": {"path": "b"}}}
        with pytest.raises(ConfigError, match="must not start with"):
            parse_resources(valid_resource(targets=targets))

    def test_root_target_needs_name(self) -> None:
        with pytest.raises(ConfigError, match="Field required") as info:
            parse_resources(valid_resource(targets={"path": "//p"}))
        assert info.value.location == "resources[0].targets.name"

    def test_nested_target_location(self) -> None:
        targets = {"name": "T", "path": "//p", "then": {"Child": {"path": "b", "extra": 1}}}
        with pytest.raises(ConfigError) as info:
            parse_resources(valid_resource(targets=targets))
        assert info.value.location == "resources[0].targets.then.Child.extra"

    def test_top_level_must_be_mapping(self) -> None:
        with pytest.raises(ConfigError):
            parse_resources(["https://example.com/"])

    @pytest.mark.parametrize("period", [float("inf"), 1e308, {"secs": 10**20}, "1e999"])
    def test_period_out_of_range(self, period) -> None:
        with pytest.raises(ConfigError) as info:
            parse_resources(valid_resource(period=period))
        assert info.value.location == "resources[0].period"

    def test_duplicate_names(self) -> None:
        raw = {
            "resources": [
                {"name": "same", "url": "https://a.example.com/", "period": 1},
                {"name": "same", "url": "https://b.example.com/", "period": 1},
            ]
        }
        with pytest.raises(ConfigError, match="duplicate resource names: same"):
            parse_resources(raw)

    def test_file_url(self) -> None:
        [resource] = parse_resources(valid_resource(url="file:///srv/pages/index.html"))
        assert resource.url == "file:///srv/pages/index.html"


class TestParsePeriod:
    """Tests for period parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (30, timedelta(seconds=30)),
            (0.25, timedelta(milliseconds=250)),
            ("90s", timedelta(seconds=90)),
            ("5m", timedelta(minutes=5)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("250ms", timedelta(milliseconds=250)),
            ("1d", timedelta(days=1)),
            ("45", timedelta(seconds=45)),
            ({"secs": 2}, timedelta(seconds=2)),
        ],
    )
    def test_valid(self, raw, expected) -> None:
        assert parse_period(raw) == expected

    @pytest.mark.parametrize("raw", ["", "5 minutes", "m5", True, [], -1, "0s", {"secs": 0}])
    def test_invalid(self, raw) -> None:
        with pytest.raises(ConfigError):
            parse_period(raw)
