"""
Test the scoring config sanitizer.
"""
import pytest
from triage_core.scoring import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    canonical_json,
    clone,
    get_scoring_config,
    is_equal,
    normalize,
)


class TestNormalizeBounds:
    """Out-of-range and garbled leaves never escape the declared ranges."""

    def test_missing_overrides_return_base(self):
        assert normalize(None) is DEFAULT_SCORING_CONFIG
        assert normalize("garbage") is DEFAULT_SCORING_CONFIG
        assert get_scoring_config({}) is DEFAULT_SCORING_CONFIG

    def test_numbers_are_clamped(self):
        config = normalize({"email": {"unread_bonus": 9999, "model_priority_weight": -3}})
        assert config.email.unread_bonus == 200
        assert config.email.model_priority_weight == 0.0

    @pytest.mark.parametrize("value", ["abc", None, float("nan"), float("inf"), True, [1], {"x": 1}])
    def test_invalid_numbers_keep_base(self, value):
        config = normalize({"email": {"unread_bonus": value}})
        assert config.email.unread_bonus == 18

    def test_integers_round_half_up(self):
        config = normalize({"email": {"unread_bonus": "12.5"}})
        assert config.email.unread_bonus == 13

    def test_camel_case_keys(self):
        config = normalize({"email": {"unreadBonus": 5, "idleAge": {"longWindowMaxBonus": 10}}})
        assert config.email.unread_bonus == 5
        assert config.email.idle_age.long_window_max_bonus == 10

    def test_literal_falls_back(self):
        config = normalize({"email": {"action_rules": [{"id": "x", "action_type": "bogus"}]}})
        assert config.email.action_rules[0].action_type == "playbook"

    def test_booleans(self):
        config = normalize({"email": {"explainability": {"show_breakdown": "no", "include_zero_components": "maybe"}}})
        assert config.email.explainability.show_breakdown is False
        assert config.email.explainability.include_zero_components is False

    def test_out_of_range_weekdays_dropped(self):
        config = normalize({
            "scheduling": {"entries": [{"id": "s", "preset_slug": "touring", "days_of_week": [1, 9, "2", 1]}]}
        })
        assert config.scheduling.entries[0].days_of_week == (1, 2)

    def test_default_is_never_mutated(self):
        normalize({"email": {"unread_bonus": 1, "category_weights": {"LEGAL/Contract_Draft": 0}}})
        assert DEFAULT_SCORING_CONFIG.email.unread_bonus == 18
        assert DEFAULT_SCORING_CONFIG.email.category_weights["LEGAL/Contract_Draft"] == 90


class TestNormalizeMerge:
    """Maps merge by key and rule lists merge by identity."""

    def test_category_weights_merge_by_key(self):
        config = normalize({"email": {"categoryWeights": {"LEGAL/Contract_Draft": 150, "NEW/Thing": 33}}})
        weights = config.email.category_weights

        assert weights["LEGAL/Contract_Draft"] == 100
        assert weights["NEW/Thing"] == 33
        assert weights["FINANCE/Settlement"] == 94

    def test_cross_label_rules_merge_by_prefix(self):
        config = normalize({
            "email": {
                "cross_label_rules": [
                    {"prefix": "approval/", "weight": 40},
                    {"prefix": "vip/", "weight": 10},
                    {"weight": 99},
                ]
            }
        })
        rules = {rule.prefix: rule for rule in config.email.cross_label_rules}

        assert len(rules) == 5
        assert rules["approval/"].weight == 40
        assert rules["approval/"].description == "Pending approval"
        assert rules["vip/"].weight == 10
        assert rules["vip/"].description == "vip/"

    def test_boosts_get_positional_ids(self):
        config = normalize({"email": {"advanced_boosts": [{"label": "VIP", "weight": 20}]}})
        assert config.email.advanced_boosts[0].id == "advanced_boosts-1"
        assert config.email.advanced_boosts[0].weight == 20


class TestEquality:
    """Canonical serialization and idempotence."""

    def test_normalize_is_idempotent(self):
        once = normalize({
            "email": {
                "unread_bonus": 300,
                "cross_label_rules": [{"prefix": "vip/", "weight": 10}],
                "advanced_boosts": [{"id": "b", "criteria": {"senders": ["a@x.com"], "has_attachment": True}}],
            },
            "scheduling": {"entries": [{"id": "s", "preset_slug": "touring", "end_time": None}]},
        })
        twice = normalize(once.to_dict())

        assert is_equal(once, twice)

    def test_is_equal_ignores_key_order(self):
        assert is_equal({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"d": 3, "c": 2}, "a": 1})
        assert not is_equal({"a": 1}, {"a": 2})

    def test_clone_is_equal_but_distinct(self):
        copy = clone()
        assert copy is not DEFAULT_SCORING_CONFIG
        assert is_equal(copy, DEFAULT_SCORING_CONFIG)

    def test_canonical_json_is_sorted(self):
        assert canonical_json({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_config_is_frozen(self):
        with pytest.raises(Exception):
            DEFAULT_SCORING_CONFIG.email.unread_bonus = 1
        assert isinstance(normalize({}), ScoringConfig)

    def test_shared_default_maps_are_read_only(self):
        config = get_scoring_config()
        with pytest.raises(TypeError):
            config.email.category_weights["LEGAL/Contract_Draft"] = 0
        with pytest.raises(TypeError):
            config.tasks.status_boosts["done"] = 50
        assert DEFAULT_SCORING_CONFIG.email.category_weights["LEGAL/Contract_Draft"] != 0
        assert "done" not in DEFAULT_SCORING_CONFIG.tasks.status_boosts

    def test_read_only_maps_dump_as_dicts(self):
        config = normalize({"timeline": {"conflictPenalties": {"error": 40}}})
        assert config.timeline.conflict_penalties["error"] == 40
        assert type(config.to_dict()["timeline"]["conflict_penalties"]) is dict
        assert is_equal(clone(config), config)
