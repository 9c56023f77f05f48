"""Day advancement decisions at evening review."""

from wordpanda.dispatch.advancement import decide_advancement


class TestDecideAdvancement:
    def test_no_lunch_no_move(self):
        decision = decide_advancement(3, 30, completed_lunch=False)
        assert decision.advance is False
        assert decision.graduated is False
        assert decision.next_day == 3

    def test_lunch_completed_moves_one_day(self):
        decision = decide_advancement(3, 30, completed_lunch=True)
        assert decision.advance is True
        assert decision.next_day == 4

    def test_second_to_last_day_reaches_ceiling(self):
        decision = decide_advancement(29, 30, completed_lunch=True)
        assert decision.advance is True
        assert decision.next_day == 30
        assert decision.graduated is False

    def test_last_day_graduates(self):
        decision = decide_advancement(30, 30, completed_lunch=True)
        assert decision.advance is False
        assert decision.graduated is True
        assert decision.next_day == 30

    def test_last_day_without_lunch_is_not_graduation(self):
        assert decide_advancement(30, 30, completed_lunch=False).graduated is False

    def test_beyond_total_never_advances(self):
        decision = decide_advancement(35, 30, completed_lunch=True)
        assert decision.advance is False
        assert decision.graduated is True
