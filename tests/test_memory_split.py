"""
Tests for sliding-window truncation and the three-tier split.
"""

from chat_memory import (
    MIN_MESSAGES_FOR_FIRST_PAIR,
    Message,
    ThreeTierConfig,
    TokenBudgetConfig,
    split_for_three_tier_memory,
    truncate_to_token_budget,
)

from conftest import make_conversation, make_message

# budget = 1000 - 200 - 200 (safety) = 600 tokens = 2400 chars
BASE_BUDGET = TokenBudgetConfig(context_window=1000, max_output_tokens=200)
BASE_THREE_TIER = ThreeTierConfig(
    context_window=1000, max_output_tokens=200, max_summary_budget_tokens=100
)


# ── Sliding Window Tests ──


class TestTruncateToTokenBudget:
    def test_empty_messages(self):
        assert truncate_to_token_budget([], BASE_BUDGET) == []

    def test_all_fit(self):
        messages = [make_message("user", 100), make_message("assistant", 100)]
        assert truncate_to_token_budget(messages, BASE_BUDGET) == messages

    def test_keeps_most_recent(self):
        # 1000 chars = 250 tokens each, only two fit in 600
        messages = [
            make_message("user", 1000, 0),
            make_message("assistant", 1000, 1),
            make_message("user", 1000, 2),
        ]
        result = truncate_to_token_budget(messages, BASE_BUDGET)
        assert len(result) == 2
        assert result[0] is messages[1]
        assert result[1] is messages[2]

    def test_non_positive_budget(self):
        config = TokenBudgetConfig(context_window=100, max_output_tokens=200)
        assert truncate_to_token_budget([make_message("user", 10)], config) == []

    def test_deducts_system_message(self):
        # 600 - 100 = 500 tokens, still two 250-token messages
        config = TokenBudgetConfig(
            context_window=1000, max_output_tokens=200, system_message="x" * 400
        )
        messages = [make_message("user", 1000, i) for i in range(3)]
        assert len(truncate_to_token_budget(messages, config)) == 2

    def test_deducts_new_user_message(self):
        # 600 - 100 = 500 tokens: two 250-token messages fit exactly
        config = TokenBudgetConfig(
            context_window=1000, max_output_tokens=200, new_user_message="x" * 400
        )
        messages = [make_message("user", 1000, i) for i in range(3)]
        assert truncate_to_token_budget(messages, config) == messages[1:]

        # 600 - 101 = 499 tokens: only one
        config = TokenBudgetConfig(
            context_window=1000, max_output_tokens=200, new_user_message="x" * 404
        )
        assert truncate_to_token_budget(messages, config) == messages[2:]

    def test_preserves_chronological_order(self):
        messages = [Message.user("first"), Message.assistant("second"), Message.user("third")]
        result = truncate_to_token_budget(messages, BASE_BUDGET)
        assert [m.content for m in result] == ["first", "second", "third"]

    def test_stops_at_oversized_message(self):
        # The oversized middle message blocks the small oldest one
        messages = [
            make_message("user", 40, 0),
            make_message("assistant", 4000, 1),
            make_message("user", 40, 2),
        ]
        result = truncate_to_token_budget(messages, BASE_BUDGET)
        assert result == [messages[2]]

    def test_newest_message_too_large(self):
        messages = [make_message("user", 40, 0), make_message("assistant", 4000, 1)]
        assert truncate_to_token_budget(messages, BASE_BUDGET) == []

    def test_result_is_contiguous_suffix(self):
        messages = [make_message("user", 100 * (i % 4 + 1), i) for i in range(30)]
        result = truncate_to_token_budget(messages, BASE_BUDGET)
        assert result
        assert messages[len(messages) - len(result):] == result

    def test_custom_chars_per_token(self):
        # 2 chars/token: 1000 chars = 500 tokens, only one fits
        config = TokenBudgetConfig(
            context_window=1000, max_output_tokens=200, chars_per_token=2
        )
        messages = [make_message("user", 1000, i) for i in range(3)]
        assert truncate_to_token_budget(messages, config) == messages[2:]


# ── Three-Tier Split Tests ──


class TestSplitForThreeTierMemory:
    def test_min_messages_constant(self):
        assert MIN_MESSAGES_FOR_FIRST_PAIR == 2

    def test_no_truncation_when_all_fit(self):
        messages = [make_message("user", 40), make_message("assistant", 40)]
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)
        assert result.was_truncated is False
        assert result.recent_messages is messages
        assert result.first_pair == []
        assert result.dropped_messages == []
        assert result.processed_through_index == 1

    def test_single_message_never_truncated(self):
        messages = [make_message("user", 40000)]
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)
        assert result.was_truncated is False
        assert result.processed_through_index == 0

    def test_empty_never_truncated(self):
        result = split_for_three_tier_memory([], BASE_THREE_TIER)
        assert result.was_truncated is False
        assert result.processed_through_index == 0

    def test_three_tier_split(self):
        # first pair = 200 tokens, recent budget = 600 - 200 - 100 = 300 tokens
        messages = make_conversation(10)
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)

        assert result.was_truncated is True
        assert result.first_pair == messages[:2]
        assert result.recent_messages == messages[7:]
        assert result.dropped_messages == messages[2:7]
        assert result.processed_through_index == 9

    def test_tiers_reassemble_input(self):
        messages = make_conversation(25)
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)
        assert result.was_truncated
        assembled = result.first_pair + result.dropped_messages + result.recent_messages
        assert assembled == messages

    def test_budget_exhausted(self):
        config = ThreeTierConfig(
            context_window=100, max_output_tokens=200, max_summary_budget_tokens=100
        )
        messages = make_conversation(4)
        result = split_for_three_tier_memory(messages, config)
        assert result.was_truncated is True
        assert result.first_pair == []
        assert result.recent_messages == []
        assert result.dropped_messages == messages
        assert result.processed_through_index == 3

    def test_first_pair_exceeds_budget(self):
        messages = [
            make_message("user", 4000, 0),
            make_message("assistant", 4000, 1),
            make_message("user", 40, 2),
        ]
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)
        assert result.was_truncated is True
        assert result.first_pair == []
        assert result.dropped_messages == messages

    def test_first_pair_equal_to_budget_is_not_applicable(self):
        # 2 x 1200 chars = 600 tokens == budget
        messages = [
            make_message("user", 1200, 0),
            make_message("assistant", 1200, 1),
            make_message("user", 40, 2),
        ]
        result = split_for_three_tier_memory(messages, BASE_THREE_TIER)
        assert result.was_truncated is True
        assert result.first_pair == []

    def test_summary_reservation_consumes_recent_budget(self):
        # recent budget = 600 - 200 - 500 < 0
        config = ThreeTierConfig(
            context_window=1000, max_output_tokens=200, max_summary_budget_tokens=500
        )
        messages = make_conversation(10)
        result = split_for_three_tier_memory(messages, config)
        assert result.was_truncated is True
        assert result.first_pair == messages[:2]
        assert result.recent_messages == []
        assert result.dropped_messages == messages[2:]

    def test_zero_summary_reservation(self):
        config = ThreeTierConfig(
            context_window=1000,
            max_output_tokens=200,
            max_summary_budget_tokens=0,
            safety_margin=0,
        )
        # budget 800, pair = 400 tokens, recent budget = 400 tokens = 4 messages
        messages = [make_message("user", 800, 0), make_message("assistant", 800, 1)]
        messages += [make_message("user", 400, i) for i in range(2, 7)]
        result = split_for_three_tier_memory(messages, config)
        assert result.first_pair == messages[:2]
        assert result.recent_messages == messages[3:]
        assert result.dropped_messages == [messages[2]]
