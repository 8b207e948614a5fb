from __future__ import annotations

from core.config import DEFAULT_MODERATION_URL, parse_relay_config


def test_parses_endpoints_as_sources_and_targets() -> None:
    config = parse_relay_config(
        {
            "endpoints": {
                "tg": {
                    "platform": "telegram",
                    "self_id": 123,
                    "channel_id": -100456,
                    "name": "TG",
                    "blocking_words": ["foo"],
                    "only_quote": True,
                    "simulate_original": True,
                }
            },
            "delay": {"telegram": "350"},
        }
    )

    source = config.sources["tg"]
    assert (source.self_id, source.channel_id) == ("123", "-100456")
    assert source.blocking_words == ("foo",)
    assert source.only_quote is True
    assert config.targets["tg"].instance_key == "telegram:123"
    assert config.targets["tg"].simulate_original is True
    assert config.delay_for("telegram") == 0.35
    assert config.delay_for("discord") == 0.2


def test_missing_sections_fall_back_to_defaults() -> None:
    config = parse_relay_config({})
    assert config.rules == ()
    assert config.moderation.enabled is True
    assert config.moderation.url == DEFAULT_MODERATION_URL
    assert config.storage.backend == "sqlite"


def test_malformed_entries_are_dropped() -> None:
    config = parse_relay_config(
        {
            "endpoints": {"bad": "nope", "noplat": {"channel_id": "1"}},
            "rules": ["x", {"source": "a", "targets": "b"}, {"source": "a", "targets": ["b"]}],
            "delay": {"discord": "soon"},
            "instances": [{"platform": "telegram"}, {"platform": "telegram", "session": "relay"}],
        }
    )
    assert config.sources == {}
    assert config.targets == {}
    assert len(config.rules) == 1
    assert config.delay_ms == {}
    assert [instance.session for instance in config.instances] == ["relay"]


def test_source_without_selectors_is_dropped() -> None:
    config = parse_relay_config(
        {
            "endpoints": {
                "bare": {"platform": "discord"},
                "typo": {"platform": "telegram", "self_id": "1", "channelId": "c1"},
            }
        }
    )
    assert config.sources == {}
    assert config.targets == {}


def test_explicit_wildcard_selectors_are_kept() -> None:
    config = parse_relay_config({"endpoints": {"all": {"platform": "discord", "self_id": "*", "channel_id": "*"}}})
    assert config.sources["all"].self_id == "*"
    assert config.sources["all"].channel_id == "*"
    assert "all" not in config.targets


def test_non_object_root_yields_empty_config() -> None:
    for raw in ([], "rules", None):
        config = parse_relay_config(raw)
        assert config.sources == {}
        assert config.rules == ()
