"""
Test the message, task, timeline and thread scorers.
"""
import pytest
from datetime import datetime, timedelta, timezone
from triage_core.conflicts.models import Conflict
from triage_core.rank.message import idle_age_value, message_priority, score_message
from triage_core.rank.task import score_task
from triage_core.rank.thread import normalize_weights, score_thread, score_thread_entity
from triage_core.rank.timeline import is_terminal, score_timeline_item
from triage_core.schemas import DependencyRecord, TimelineItemRecord
from triage_core.scoring import DEFAULT_SCORING_CONFIG, normalize

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def ago(hours=0, days=0):
    return (NOW - timedelta(hours=hours, days=days)).isoformat()


def ahead(hours=0, days=0):
    return (NOW + timedelta(hours=hours, days=days)).isoformat()


def labels_of(entity):
    return [component.label for component in entity.components]


class TestMessageScoring:
    """Test inbox message scoring."""

    def test_category_unread_unassigned_scenario(self):
        entity = score_message({"id": "m1", "category": "LEGAL/Contract_Draft"}, now=NOW)

        assert entity.score == 120
        assert entity.rationale == (
            "Category LEGAL/Contract_Draft (+90)",
            "Unread in inbox (+18)",
            "Triage unassigned (+12)",
        )
        assert entity.id == "email:m1"
        assert entity.title == "(no subject)"

    def test_unknown_category_uses_default_weight(self):
        entity = score_message({"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x"}, now=NOW)
        assert entity.score == 40

    def test_model_priority(self):
        entity = score_message({"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x",
                                "modelScore": 80}, now=NOW)
        assert entity.score == 40 + 48
        assert "Model priority 80" in labels_of(entity)

    @pytest.mark.parametrize("hours,expected", [(2, 10), (10, 29), (48, 68)])
    def test_idle_windows(self, hours, expected):
        entity = score_message({"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x",
                                "receivedAt": ago(hours=hours)}, now=NOW)
        assert entity.score == 40 + expected

    def test_idle_age_is_monotonic_within_windows(self):
        email = DEFAULT_SCORING_CONFIG.email
        for window in ([h / 4 for h in range(0, 16)], [4 + h / 4 for h in range(0, 80)], [24 + h for h in range(0, 200)]):
            values = [idle_age_value(hours, "unassigned", email) for hours in window]
            assert values == sorted(values)

    def test_snoozed_idle_is_dampened(self):
        email = DEFAULT_SCORING_CONFIG.email
        assert idle_age_value(10, "snoozed", email) == 19
        assert idle_age_value(10, "snoozed", email) < idle_age_value(10, "unassigned", email)

    def test_future_or_unparsable_received_at_is_ignored(self):
        base = {"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x"}
        assert score_message({**base, "receivedAt": ahead(hours=3)}, now=NOW).score == 40
        assert score_message({**base, "receivedAt": "yesterday"}, now=NOW).score == 40

    def test_cross_label_applies_once(self):
        entity = score_message({"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x",
                                "labels": ["approval/contract", "APPROVAL/budget"]}, now=NOW)
        assert entity.score == 40 + 22
        assert labels_of(entity).count("Pending approval") == 1

    def test_advanced_boost_sees_running_total(self):
        message = {"id": "m1", "category": "LEGAL/Contract_Draft", "fromEmail": "ops@Label.com"}
        boosted = normalize({"email": {"advanced_boosts": [
            {"id": "vip", "label": "VIP sender", "weight": 30, "criteria": {"domains": ["label.com"], "min_priority": 100}},
        ]}})
        blocked = normalize({"email": {"advanced_boosts": [
            {"id": "vip", "label": "VIP sender", "weight": 30, "criteria": {"domains": ["label.com"], "min_priority": 200}},
        ]}})

        assert score_message(message, config=boosted, now=NOW).score == 150
        assert score_message(message, config=blocked, now=NOW).score == 120

    def test_boost_sender_falls_back_to_name(self):
        config = normalize({"email": {"advanced_boosts": [{"id": "b", "weight": 5, "criteria": {"senders": ["mona"]}}]}})
        message = {"id": "m1", "category": "NEW/Unknown", "isRead": True, "triageState": "x", "fromName": "Mona Lisa"}
        assert score_message(message, config=config, now=NOW).score == 45

    def test_total_is_floored_at_zero(self):
        entity = score_message({"id": "m1", "category": "MISC/Uncategorized", "triageState": "resolved"}, now=NOW)
        assert entity.score == 0
        assert sum(component.value for component in entity.components) < 0
        assert message_priority({"id": "m1", "category": "MISC/Uncategorized", "triageState": "resolved"}, now=NOW) == 0

    def test_action_rules(self):
        config = normalize({"email": {"action_rules": [
            {"id": "draft-reply", "categories": ["legal/contract_draft"], "min_priority": 100},
            {"id": "too-high", "min_priority": 500},
        ]}})
        entity = score_message({"id": "m1", "category": "LEGAL/Contract_Draft"}, config=config, now=NOW)

        assert entity.actions == ("draft-reply",)
        assert entity.to_dict()["actions"] == ["draft-reply"]

    def test_explainability_can_hide_breakdown(self):
        config = normalize({"email": {"explainability": {"show_breakdown": False}}})
        entity = score_message({"id": "m1", "category": "LEGAL/Contract_Draft"}, config=config, now=NOW)
        assert entity.rationale == ()
        assert entity.score == 120


class TestTaskScoring:
    """Test task scoring."""

    def test_no_due_date(self):
        entity = score_task({"id": "t1", "title": "Book flights"}, now=NOW)
        assert entity.score == 10
        assert entity.rationale == ("No due date set (+10)",)

    def test_upcoming(self):
        entity = score_task({"id": "t1", "dueAt": ahead(days=2)}, now=NOW)
        assert entity.score == 37
        assert labels_of(entity) == ["Due in 2d"]

    def test_overdue_escalates(self):
        entity = score_task({"id": "t1", "dueAt": ago(days=2)}, now=NOW)
        assert entity.score == 45 + 37
        assert labels_of(entity) == ["Due date reached", "Overdue by 2d"]

    def test_overdue_escalation_is_capped(self):
        entity = score_task({"id": "t1", "dueAt": ago(days=30)}, now=NOW)
        assert entity.score == 45 + 60

    def test_far_future_has_no_component(self):
        entity = score_task({"id": "t1", "dueAt": ahead(days=20)}, now=NOW)
        assert entity.score == 0
        assert entity.components == ()

    def test_unparsable_due_date_is_omitted(self):
        entity = score_task({"id": "t1", "dueAt": "soon"}, now=NOW)
        assert entity.components == ()

    def test_priority_and_status(self):
        entity = score_task({"id": "t1", "priority": 50, "status": "in_progress"}, now=NOW)
        assert entity.score == 10 + 15 + 8


class TestTimelineScoring:
    """Test timeline item scoring."""

    def test_undated(self):
        assert score_timeline_item({"id": "a"}, now=NOW).score == 6

    def test_starts_at_drives_date(self):
        entity = score_timeline_item({"id": "a", "startsAt": ahead(days=1), "dueAt": ago(days=5)}, now=NOW)
        assert labels_of(entity) == ["Starts in 1d"]
        assert entity.score == 41

    def test_conflict_penalties(self):
        conflicts = [
            Conflict(id="a:b:lane_overlap", kind="lane_overlap", severity="warning", message="Lane overlap", item_ids=("a", "b")),
            Conflict(id="a:c:travel_time", kind="travel_time", severity="error", message="Travel", item_ids=("a", "c")),
            Conflict(id="b:c:travel_time", kind="travel_time", severity="error", message="Other", item_ids=("b", "c")),
        ]
        entity = score_timeline_item({"id": "a"}, now=NOW, conflicts=conflicts)
        assert entity.score == 0
        assert [component.value for component in entity.components] == [6, -15, -25]

    def test_dependencies(self):
        items = {
            "done": TimelineItemRecord(id="done", title="Advance", status="Completed"),
            "open": TimelineItemRecord(id="open", title="Visa"),
        }
        dependencies = [
            DependencyRecord(from_item_id="done", to_item_id="a"),
            DependencyRecord(from_item_id="open", to_item_id="a"),
            DependencyRecord(from_item_id="ghost", to_item_id="a", kind="SS"),
            DependencyRecord(from_item_id="open", to_item_id="other"),
        ]
        entity = score_timeline_item({"id": "a", "priority": 100}, now=NOW, dependencies=dependencies, items_by_id=items)

        assert labels_of(entity) == ["Undated timeline entry", "Manual priority 100", "Blocked by Visa", "Blocked by ghost"]
        assert entity.score == 6 + 25 - 10 - 6

    def test_is_terminal(self):
        assert is_terminal("Completed")
        assert is_terminal(" done ")
        assert not is_terminal(None)
        assert not is_terminal("in_progress")


class TestThreadScoring:
    """Test multi-signal thread scoring."""

    def test_empty_signals(self):
        assert score_thread({}, now=NOW).score == 0

    def test_recency_half_life(self):
        breakdown = score_thread({"lastMessageAt": ago(hours=24)}, now=NOW)
        assert breakdown.component("recency").value == pytest.approx(50.0)
        assert breakdown.score == pytest.approx(12.5)

    def test_urgency_levels(self):
        assert score_thread({"upcomingDeadlineAt": ahead(hours=12)}, now=NOW).component("urgency").value == 95.0
        assert score_thread({"upcomingDeadlineAt": ago(hours=1)}, now=NOW).component("urgency").value == 100.0
        keyword = score_thread({"upcomingDeadlineAt": ahead(hours=12), "hasUrgentKeyword": True}, now=NOW)
        assert keyword.component("urgency").value == 100.0

    def test_expected_reply_overdue(self):
        breakdown = score_thread({"expectedReplyBy": ago(hours=13)}, now=NOW)
        assert breakdown.component("urgency").value == 90.0
        assert breakdown.component("outstanding").value == 80.0

    def test_impact_is_capped(self):
        breakdown = score_thread({"attachmentsOfInterestCount": 3, "linkedProjectPriority": 50}, now=NOW)
        assert breakdown.component("impact").value == 100.0

    def test_normalize_weights(self):
        assert normalize_weights({}) == {key: 0.2 for key in ("recency", "heat", "urgency", "impact", "outstanding")}
        weights = normalize_weights({"recency": 2, "heat": 2, "urgency": -1})
        assert weights["recency"] == 0.5
        assert weights["urgency"] == 0.0

    def test_thread_entity(self):
        entity = score_thread_entity("t1", {"lastMessageAt": NOW.isoformat()}, title="Tour routing", now=NOW)
        data = entity.to_dict()

        assert entity.score == 25
        assert data["entity_type"] == "thread"
        assert data["id"] == "thread:t1"
        assert "thread_breakdown" in data


class TestReferenceTime:
    """Naive and string reference times are read as UTC."""

    NAIVE = NOW.replace(tzinfo=None)

    def test_task_and_timeline(self):
        task = {"id": "t1", "dueAt": ago(days=2)}
        item = {"id": "a", "startsAt": ahead(days=1)}

        assert score_task(task, now=self.NAIVE).score == 45 + 37
        assert score_timeline_item(item, now=self.NAIVE).score == 41
        assert score_task(task, now="2024-03-10T12:00:00Z").score == 45 + 37

    def test_message_and_thread(self):
        message = {"id": "m1", "category": "LEGAL/Contract_Draft", "receivedAt": ago(hours=2)}

        assert score_message(message, now=self.NAIVE).score == score_message(message, now=NOW).score
        assert message_priority(message, now=self.NAIVE) == message_priority(message, now=NOW)
        assert score_thread({"lastMessageAt": ago(hours=24)}, now=self.NAIVE).score == pytest.approx(12.5)

    def test_missing_now_is_rejected(self):
        with pytest.raises(ValueError):
            score_task({"id": "t1"}, now=None)
        with pytest.raises(ValueError):
            score_message({"id": "m1"}, now="yesterday")
