import pytest

from tests.conftest import InMemoryQuoteRepository
from app.schemas.quote import QuoteStatus
from app.services.quote_evaluator import calculate_comparison_metrics, compute_comparison_metrics


def _metrics_by_id(repository, rfq_id="RFQ-1"):
    return {q.id: q.comparison_metrics for q in repository.list_by_rfq(rfq_id)}


def test_price_rank_cheapest_first(make_quote):
    quotes = [
        make_quote(quote_id=1, total_amount=500, total_score=50),
        make_quote(quote_id=2, total_amount=300, total_score=50),
        make_quote(quote_id=3, total_amount=700, total_score=50),
    ]

    compute_comparison_metrics(quotes)

    assert [q.comparison_metrics.price_rank for q in quotes] == [2, 1, 3]


def test_overall_rank_follows_total_score(make_quote):
    quotes = [
        make_quote(quote_id=1, total_score=90),
        make_quote(quote_id=2, total_score=70),
        make_quote(quote_id=3, total_score=85),
    ]

    result = compute_comparison_metrics(quotes)

    assert [q.comparison_metrics.overall_rank for q in quotes] == [1, 3, 2]
    assert [r.quote_id for r in result.rankings] == [1, 3, 2]


def test_overall_rank_ties_keep_retrieval_order(make_quote):
    quotes = [
        make_quote(quote_id=1, total_score=60),
        make_quote(quote_id=2, total_score=80),
        make_quote(quote_id=3, total_score=60),
    ]

    compute_comparison_metrics(quotes)

    assert [q.comparison_metrics.overall_rank for q in quotes] == [2, 1, 3]


def test_missing_delivery_time_ranks_last(make_quote):
    quotes = [
        make_quote(quote_id=1, delivery_days=None, total_score=90),
        make_quote(quote_id=2, delivery_days=30, total_score=80),
    ]

    compute_comparison_metrics(quotes)

    assert quotes[0].comparison_metrics.delivery_rank == 2
    assert quotes[1].comparison_metrics.delivery_rank == 1


def test_zero_delivery_time_is_treated_as_missing(make_quote):
    quotes = [
        make_quote(quote_id=1, delivery_days=0, total_score=90),
        make_quote(quote_id=2, delivery_days=45, total_score=80),
    ]

    result = compute_comparison_metrics(quotes)

    assert quotes[0].comparison_metrics.delivery_rank == 2
    assert result.average_delivery_time == 45


def test_missing_quality_score_ranks_lowest(make_quote):
    quotes = [
        make_quote(quote_id=1, quality=None, total_score=90),
        make_quote(quote_id=2, quality=10, total_score=80),
    ]

    compute_comparison_metrics(quotes)

    assert quotes[0].comparison_metrics.quality_rank == 2
    assert quotes[1].comparison_metrics.quality_rank == 1


def test_variance_is_zero_when_all_prices_are_zero(make_quote):
    quotes = [make_quote(quote_id=i, total_amount=0, total_score=50) for i in (1, 2, 3)]

    result = compute_comparison_metrics(quotes)

    assert result.average_price == 0
    assert all(q.comparison_metrics.price_variance_from_average == 0 for q in quotes)
    assert [q.comparison_metrics.price_rank for q in quotes] == [1, 2, 3]


def test_zero_price_is_ranked_but_excluded_from_average(make_quote):
    quotes = [
        make_quote(quote_id=1, total_amount=0, total_score=50),
        make_quote(quote_id=2, total_amount=200, total_score=50),
        make_quote(quote_id=3, total_amount=400, total_score=50),
    ]

    result = compute_comparison_metrics(quotes)

    assert result.average_price == 300
    assert quotes[0].comparison_metrics.price_rank == 1
    assert quotes[0].comparison_metrics.price_variance_from_average == pytest.approx(-100)


def test_variance_is_zero_when_no_delivery_times(make_quote):
    quotes = [make_quote(quote_id=i, delivery_days=None, total_score=50) for i in (1, 2)]

    compute_comparison_metrics(quotes)

    assert all(q.comparison_metrics.delivery_variance_from_average == 0 for q in quotes)


def test_end_to_end_rfq_comparison(make_quote):
    repository = InMemoryQuoteRepository([
        make_quote(total_amount=500, quality=90, delivery_days=5, total_score=85),
        make_quote(total_amount=300, quality=70, delivery_days=10, total_score=75),
        make_quote(total_amount=700, quality=80, delivery_days=None, total_score=80),
    ])

    result = calculate_comparison_metrics("RFQ-1", repository)

    a, b, c = (_metrics_by_id(repository)[i] for i in (1, 2, 3))
    assert (a.price_rank, b.price_rank, c.price_rank) == (2, 1, 3)
    assert (a.delivery_rank, b.delivery_rank, c.delivery_rank) == (1, 2, 3)
    assert (a.quality_rank, c.quality_rank, b.quality_rank) == (1, 2, 3)
    assert (a.overall_rank, c.overall_rank, b.overall_rank) == (1, 2, 3)

    assert result.average_price == 500
    assert a.price_variance_from_average == pytest.approx(0)
    assert b.price_variance_from_average == pytest.approx(-40)
    assert c.price_variance_from_average == pytest.approx(40)

    assert result.average_delivery_time == 7.5
    assert a.delivery_variance_from_average == pytest.approx(-100 / 3)
    assert b.delivery_variance_from_average == pytest.approx(100 / 3)
    assert c.delivery_variance_from_average == pytest.approx(-100)

    assert sorted(result.updated) == [1, 2, 3]
    assert result.failed == {}


def test_empty_rfq_is_a_no_op(repository):
    result = calculate_comparison_metrics("RFQ-EMPTY", repository)

    assert result.rankings == []
    assert result.updated == []
    assert repository.metric_writes == []


def test_only_evaluated_selected_rejected_quotes_are_ranked(make_quote):
    repository = InMemoryQuoteRepository([
        make_quote(total_score=70, status=QuoteStatus.EVALUATED),
        make_quote(total_score=None, status=QuoteStatus.RECEIVED),
        make_quote(total_score=90, status=QuoteStatus.SELECTED),
        make_quote(total_score=10, status=QuoteStatus.REJECTED),
        make_quote(total_score=None, status=QuoteStatus.UNDER_REVIEW),
    ])

    result = calculate_comparison_metrics("RFQ-1", repository)

    assert sorted(repository.metric_writes) == [1, 3, 4]
    assert [r.quote_id for r in result.rankings] == [3, 1, 4]
    assert repository.get(2).comparison_metrics.overall_rank is None


def test_other_rfqs_are_untouched(make_quote):
    repository = InMemoryQuoteRepository([
        make_quote(rfq_id="RFQ-1", total_score=70),
        make_quote(rfq_id="RFQ-2", total_score=90),
    ])

    calculate_comparison_metrics("RFQ-1", repository)

    assert repository.metric_writes == [1]


def test_failed_write_does_not_stop_other_writes(make_quote):
    repository = InMemoryQuoteRepository(
        [make_quote(total_score=s) for s in (90, 80, 70)],
        fail_ids={2}
    )

    result = calculate_comparison_metrics("RFQ-1", repository)

    assert repository.metric_writes == [1, 3]
    assert result.updated == [1, 3]
    assert list(result.failed) == [2]
    assert "write failed" in result.failed[2]
