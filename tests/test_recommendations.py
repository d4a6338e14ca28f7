"""
Tests for the recommendation rules.
"""

from datetime import date, timedelta

import pytest

from revenue_analytics.analytics.recommendations import RecommendationsComputation
from revenue_analytics.models import Category, Priority


@pytest.fixture
def recommendations(repository) -> RecommendationsComputation:
    return RecommendationsComputation(repository)


def _ids(view):
    return [f.id for f in view.recommendations]


class TestAgingEnterpriseDeals:
    """Rule: open Enterprise deals older than the staleness threshold."""

    def test_single_old_enterprise_deal(self, recommendations, data, q1_2025):
        """Test the reference scenario: one 60000 deal created 40 days before the quarter."""
        created = date(2025, 1, 1) - timedelta(days=40)
        data.account('acc-ent', name='Globex', segment='Enterprise')
        data.deal('D-1', 'Prospecting', 60000, created, account_id='acc-ent')

        view = recommendations.compute(q1_2025)

        assert _ids(view) == ['rec-1']
        assert view.total_recommendations == 1
        finding = view.recommendations[0]
        assert finding.priority == Priority.HIGH
        assert finding.category == Category.DEALS
        assert finding.title == 'Focus on aging Enterprise deals'
        assert finding.description == '1 Enterprise deals worth $60K have been open for over 30 days.'
        assert finding.impact == 'Potential to close $60K in revenue'
        assert finding.metric == '1 deals'

    def test_ignores_other_segments(self, recommendations, data, q1_2025):
        data.account('acc-smb', segment='SMB')
        data.deal('D-1', 'Prospecting', 60000, '2024-10-01', account_id='acc-smb')

        assert recommendations.aging_enterprise_deals(q1_2025) is None

    def test_thousands_round_half_away_from_zero(self, recommendations, data, q1_2025):
        data.deal('D-1', 'Negotiation', 62500, '2024-12-01')

        finding = recommendations.aging_enterprise_deals(q1_2025)

        assert '$63K' in finding.description


class TestWorstRep:
    """Rule: coach the lowest win-rate rep with enough decisions."""

    def _decisions(self, data, rep_id, name, won, lost):
        data.rep(rep_id, name)
        for i in range(won):
            data.deal(f'{rep_id}-W{i}', 'Closed Won', 1000, '2025-01-01', '2025-02-01', rep_id=rep_id)
        for i in range(lost):
            data.deal(f'{rep_id}-L{i}', 'Closed Lost', 1000, '2025-01-01', '2025-02-01', rep_id=rep_id)

    def test_fires_below_forty_percent(self, recommendations, data, q1_2025):
        self._decisions(data, 'rep-a', 'Alice', won=2, lost=1)
        self._decisions(data, 'rep-b', 'Bob', won=1, lost=3)

        finding = recommendations.worst_rep(q1_2025)

        assert finding.id == 'rec-2'
        assert finding.priority == Priority.HIGH
        assert finding.category == Category.REPS
        assert finding.title == 'Coach Bob on win rate'
        assert finding.description == 'Bob has a 25% win rate in Q1 2025, below team average.'
        assert finding.impact == 'Improving win rate by 10% could add significant revenue'

    def test_needs_three_decisions(self, recommendations, data, q1_2025):
        self._decisions(data, 'rep-a', 'Alice', won=0, lost=2)

        assert recommendations.worst_rep(q1_2025) is None

    def test_silent_at_forty_percent(self, recommendations, data, q1_2025):
        self._decisions(data, 'rep-a', 'Alice', won=2, lost=3)

        assert recommendations.worst_rep(q1_2025) is None

    def test_tie_goes_to_first_rep(self, recommendations, data, q1_2025):
        self._decisions(data, 'rep-b', 'Bob', won=0, lost=3)
        self._decisions(data, 'rep-a', 'Alice', won=0, lost=3)

        assert recommendations.worst_rep(q1_2025).title == 'Coach Alice on win rate'


class TestWorstSegment:
    """Rule: the segment with the lowest win rate and open pipeline."""

    def test_fires_for_lowest_segment(self, recommendations, data, q1_2025):
        data.account('acc-ent', segment='Enterprise')
        data.account('acc-smb', segment='SMB')
        data.deal('E-W', 'Closed Won', 1000, '2025-01-01', '2025-02-01', account_id='acc-ent')
        data.deal('E-L', 'Closed Lost', 1000, '2025-01-01', '2025-02-01', account_id='acc-ent')
        data.deal('E-open', 'Prospecting', 10000, '2025-03-20', account_id='acc-ent')
        data.deal('S-W', 'Closed Won', 1000, '2025-01-01', '2025-02-01', account_id='acc-smb')
        data.deal('S-open', 'Prospecting', 5000, '2025-03-20', account_id='acc-smb')

        finding = recommendations.worst_segment(q1_2025)

        assert finding.id == 'rec-3'
        assert finding.priority == Priority.MEDIUM
        assert finding.category == Category.ACCOUNTS
        assert finding.title == 'Increase activity for Enterprise segment'
        assert finding.description == 'Enterprise segment has 1 open deals worth $10K.'
        assert finding.metric == '50% win rate'

    def test_silent_without_decisions(self, recommendations, data, q1_2025):
        data.deal('D-1', 'Prospecting', 10000, '2025-03-20')

        assert recommendations.worst_segment(q1_2025) is None

    def test_silent_without_open_pipeline(self, recommendations, data, q1_2025):
        data.deal('D-1', 'Closed Lost', 1000, '2025-01-01', '2025-02-01')

        assert recommendations.worst_segment(q1_2025) is None


class TestInactiveAccounts:
    """Rule: more than five accounts with open deals and no recent activity."""

    def test_fires_above_five(self, recommendations, data, q1_2025):
        for i in range(6):
            data.deal(f'D-{i}', 'Prospecting', 1000, '2025-03-20', account_id=f'acc-{i}')

        finding = recommendations.inactive_accounts(q1_2025)

        assert finding.id == 'rec-4'
        assert finding.priority == Priority.MEDIUM
        assert finding.title == 'Increase outreach to inactive accounts'
        assert finding.metric == '6 accounts'

    def test_counts_past_the_risk_list_cap(self, recommendations, data, q1_2025):
        for i in range(20):
            data.deal(f'D-{i}', 'Prospecting', 1000, '2025-03-20', account_id=f'acc-{i:02d}')

        assert recommendations.inactive_accounts(q1_2025).metric == '20 accounts'

    def test_silent_at_five(self, recommendations, data, q1_2025):
        for i in range(5):
            data.deal(f'D-{i}', 'Prospecting', 1000, '2025-03-20', account_id=f'acc-{i}')

        assert recommendations.inactive_accounts(q1_2025) is None


class TestNegotiationQuickWins:
    """Rule: more than three open negotiation-stage deals."""

    def test_fires_above_three(self, recommendations, data, q1_2025):
        for i in range(4):
            data.deal(f'N-{i}', 'Negotiation', 10000, '2025-03-20')

        finding = recommendations.negotiation_quick_wins(q1_2025)

        assert finding.id == 'rec-5'
        assert finding.priority == Priority.HIGH
        assert finding.impact == 'Potential quick wins: $40K'
        assert finding.metric == '4 deals'

    def test_silent_at_three(self, recommendations, data, q1_2025):
        for i in range(3):
            data.deal(f'N-{i}', 'Negotiation', 10000, '2025-03-20')

        assert recommendations.negotiation_quick_wins(q1_2025) is None

    def test_deals_closed_by_quarter_end_do_not_count(self, recommendations, data, q1_2025):
        for i in range(4):
            data.deal(f'N-{i}', 'Negotiation', 10000, '2025-01-10', '2025-03-01')

        assert recommendations.negotiation_quick_wins(q1_2025) is None


class TestRecommendationsView:
    """Test rule evaluation and ranking together."""

    @pytest.fixture
    def busy_quarter(self, data):
        data.account('acc-ent', segment='Enterprise')
        data.deal('E-old', 'Prospecting', 60000, '2024-11-01', account_id='acc-ent')
        for i in range(6):
            data.account(f'acc-{i}', segment='SMB')
            data.deal(f'N-{i}', 'Negotiation', 10000, '2025-03-20', account_id=f'acc-{i}')

    def test_ranked_by_priority_then_rule_order(self, recommendations, busy_quarter, q1_2025):
        view = recommendations.compute(q1_2025)

        assert _ids(view) == ['rec-1', 'rec-5', 'rec-4']
        assert view.total_recommendations == 3

    def test_total_counts_before_truncation(self, repository, busy_quarter, q1_2025):
        view = RecommendationsComputation(repository, limit=2).compute(q1_2025)

        assert _ids(view) == ['rec-1', 'rec-5']
        assert view.total_recommendations == 3

    def test_empty_dataset(self, recommendations, q1_2025):
        view = recommendations.compute(q1_2025)

        assert view.recommendations == []
        assert view.total_recommendations == 0

    def test_serialization(self, recommendations, busy_quarter, q1_2025):
        payload = recommendations.compute(q1_2025).model_dump(by_alias=True, mode='json')

        assert payload['totalRecommendations'] == 3
        assert payload['recommendations'][0]['priority'] == 'high'
        assert payload['recommendations'][0]['category'] == 'deals'
