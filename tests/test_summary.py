# tests/test_summary.py

import pytest

from scheme_manager.calculator.summary import (build_distributor_article_summary, create_distributor_scheme_summary,
                                               summarize_calculation, to_number)


@pytest.mark.parametrize("value, expected", [
    (None, 0.0), ('', 0.0), ('abc', 0.0), (float('nan'), 0.0), ('1,250.5', 1250.5), (7, 7.0), (True, 0.0)
])
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_summaries_for_one_distributor_are_combined():
    summaries = [
        {'distributorId': 'DIST001', 'distributorName': 'ABC Ltd', 'articleId': 'B2',
         'totalQuantity': 10, 'totalValue': 1000, 'commission': 50, 'salesCount': 2},
        {'distributorId': 'DIST001', 'distributorName': 'ABC Renamed', 'articleId': 'A1',
         'totalQuantity': 5, 'totalValue': 500, 'commission': 25, 'salesCount': 1},
        {'distributorId': 'DIST001', 'distributorName': 'ABC Ltd', 'articleId': 'B2',
         'totalQuantity': 0, 'totalValue': 0, 'commission': 0, 'salesCount': 1},
    ]

    result = create_distributor_scheme_summary(summaries)

    assert result == [{
        'distributorId': 'DIST001',
        'distributorName': 'ABC Ltd',
        'totalQuantity': 15.0,
        'totalValue': 1500.0,
        'totalCommission': 75.0,
        'totalSalesCount': 4,
        'uniqueArticles': ['A1', 'B2']
    }]


def test_missing_numbers_count_as_zero():
    result = create_distributor_scheme_summary([
        {'distributorId': 'DIST001', 'articleId': 'A1', 'totalQuantity': None, 'commission': 'n/a'},
        {'distributorId': 'DIST001', 'articleId': 'A2', 'totalQuantity': 3},
    ])

    assert result[0]['totalQuantity'] == 3.0
    assert result[0]['totalValue'] == 0.0
    assert result[0]['totalCommission'] == 0.0
    assert result[0]['totalSalesCount'] == 0


def test_aggregation_is_deterministic():
    summaries = [
        {'distributorId': 'D2', 'distributorName': 'Two', 'articleId': 'Z9', 'totalQuantity': 1, 'commission': 1, 'salesCount': 1},
        {'distributorId': 'D1', 'distributorName': 'One', 'articleId': 'A1', 'totalQuantity': 2, 'commission': 2, 'salesCount': 1},
        {'distributorId': 'D2', 'distributorName': 'Two', 'articleId': 'A5', 'totalQuantity': 3, 'commission': 3, 'salesCount': 1},
    ]

    assert create_distributor_scheme_summary(summaries) == create_distributor_scheme_summary(summaries)


def _detail(distributor_id, article_id, quantity, value, commission, group_commission, **extra):
    detail = {'distributorId': distributor_id, 'distributorName': f'Name {distributor_id}', 'articleId': article_id,
              'billingQuantity': quantity, 'netSales': value, 'commission': commission,
              'totalGroupQuantity': 0, 'totalGroupValue': 0, 'totalGroupCommission': group_commission,
              'slabRate': 2, 'slabType': 'quantity', 'commissionType': 'percentage'}
    detail.update(extra)
    return detail


def test_article_summary_is_rebuilt_from_details():
    details = [
        _detail('D1', 'A1', 4, 400, 4, 10, totalGroupQuantity=10, totalGroupValue=1000),
        _detail('D1', 'A1', 6, 600, 6, 10, totalGroupQuantity=10, totalGroupValue=1000),
        _detail('D2', 'A1', -2, -200, 0, 0, totalGroupQuantity=-2, totalGroupValue=-200),
    ]

    summary = build_distributor_article_summary(details)

    assert len(summary) == 2
    assert summary[0] == {
        'distributorId': 'D1', 'distributorName': 'Name D1', 'articleId': 'A1',
        'totalQuantity': 10.0, 'totalValue': 1000.0, 'slabRate': 2.0, 'commission': 10.0,
        'salesCount': 2, 'comparisonValue': 10.0, 'slabType': 'quantity', 'commissionType': 'percentage'
    }
    assert summary[1]['comparisonValue'] == 2.0


def test_summarize_calculation_totals():
    details = [
        _detail('D1', 'A1', 4, 400, 4, 10),
        _detail('D1', 'A2', 6, 600, 6.5, 6.5),
        _detail('D2', 'A1', 1, 100, 1, 1),
    ]

    assert summarize_calculation(details) == {
        'totalCommission': 11.5,
        'uniqueDistributors': 2,
        'uniqueArticles': 2,
        'totalRecords': 3,
        'totalDistributorArticleCombinations': 3
    }
