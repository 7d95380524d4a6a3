"""Tests for routing key derivation and topic matching"""
import pytest

from intake_service.messaging.routing import (
    any_pattern_matches,
    routing_key_for,
    routing_key_matches,
)


class TestRoutingKeyFor:
    """Test routing key derivation from event types"""

    @pytest.mark.parametrize("event_type,expected", [
        ("IntakeCompleted", "intake.completed"),
        ("FormCreated", "form.created"),
        ("FormFieldAdded", "form.field.added"),
        ("Ping", "ping"),
    ])
    def test_pascal_case(self, event_type, expected):
        assert routing_key_for(event_type) == expected

    def test_lowercase_first_letter_kept(self):
        assert routing_key_for("intakeCompleted") == "intake.completed"

    def test_consecutive_capitals_each_start_a_segment(self):
        assert routing_key_for("SMSSent") == "s.m.s.sent"


class TestRoutingKeyMatches:
    """Test AMQP topic pattern semantics"""

    def test_exact_match(self):
        assert routing_key_matches("intake.completed", "intake.completed")

    def test_star_matches_one_segment(self):
        assert routing_key_matches("form.*", "form.created")
        assert not routing_key_matches("form.*", "form.field.added")

    def test_default_binding_does_not_match_intake_completed(self):
        """Test that a queue bound with form.* never sees intake.completed"""
        assert not routing_key_matches("form.*", "intake.completed")

    def test_hash_matches_zero_or_more_segments(self):
        assert routing_key_matches("intake.#", "intake")
        assert routing_key_matches("intake.#", "intake.completed")
        assert routing_key_matches("#", "form.field.added")
        assert routing_key_matches("#.added", "form.field.added")

    def test_any_pattern_matches(self):
        assert any_pattern_matches(["form.*", "intake.*"], "intake.completed")
        assert not any_pattern_matches(["form.*"], "intake.completed")
        assert not any_pattern_matches([], "intake.completed")
