# tests/test_engine.py

import pytest

from scheme_manager.calculator.engine import (calculate_scheme, find_slab_rate, matches_criteria,
                                              normalize_scheme_type)


@pytest.fixture
def distributors():
    return [
        {'id': 'DIST001', 'code': 'P1_ABC_DIST001', 'name': 'ABC Ltd', 'type': 'P1', 'zone': 'North1', 'state': 'Delhi'},
        {'id': 'DIST002', 'code': 'P2_XYZ_DIST002', 'name': 'XYZ Distributors', 'type': 'P2', 'zone': 'West', 'state': 'Goa'},
    ]


@pytest.fixture
def article_mappings():
    return {
        'A100': {'familyName': 'Fans', 'className': 'Ceiling', 'brandName': 'Breeze'},
        'A200': {'familyName': 'Lighting', 'className': 'LED', 'brandName': 'Glow'},
    }


def _sale(distributor_id, article_id, quantity, value, document='INV'):
    return {'monthOfBillingDate': 'Jan', 'dayOfBillingDate': '01', 'distributorId': distributor_id,
            'articleId': article_id, 'billingQuantity': quantity, 'netSales': value, 'billingDocument': document}


SLABS = [
    {'min': 51, 'max': 100, 'rate': 2},
    {'min': 0, 'max': 50, 'rate': 1},
    {'min': 101, 'rate': 3},
]


def test_scheme_type_aliases():
    assert normalize_scheme_type('per_unit') == 'booster-scheme'
    assert normalize_scheme_type('article') == 'article-scheme'
    assert normalize_scheme_type(None) == 'article-scheme'
    assert normalize_scheme_type('booster-scheme') == 'booster-scheme'


@pytest.mark.parametrize("value, expected", [(0, 1), (50, 1), (75, 2), (100, 2), (100.5, 2), (5000, 3)])
def test_find_slab_rate(value, expected):
    assert find_slab_rate(SLABS, value) == expected


def test_find_slab_rate_without_reachable_slab():
    assert find_slab_rate([{'min': 10, 'max': 20, 'rate': 5}], 3) is None
    assert find_slab_rate([], 3) is None


def test_zone_filter_applies_only_to_all_distributors(distributors):
    scheme = {'type': 'booster-scheme', 'distIds': {'type': 'all'}, 'distributorData': {'zone': 'West', 'state': 'all-states'}}

    assert matches_criteria(_sale('DIST002', 'A1', 1, 1), scheme, {}, distributors[1])
    assert not matches_criteria(_sale('DIST001', 'A1', 1, 1), scheme, {}, distributors[0])
    assert not matches_criteria(_sale('DIST999', 'A1', 1, 1), scheme, {}, None)


def test_specific_distributor_and_article_ids():
    scheme = {'distIds': {'type': 'specific', 'specificIds': ['DIST001']},
              'articles': {'type': 'other', 'specificIds': ['A100']}}

    assert matches_criteria(_sale('DIST001', 'A100', 1, 1), scheme, {}, None)
    assert not matches_criteria(_sale('DIST002', 'A100', 1, 1), scheme, {}, None)
    assert not matches_criteria(_sale('DIST001', 'A200', 1, 1), scheme, {}, None)


def test_booster_catalog_filters(article_mappings):
    scheme = {'type': 'per_unit', 'catalogType': {'family': 'Fans', 'class': 'all-classes', 'brand': ''}}

    assert matches_criteria(_sale('D', 'A100', 1, 1), scheme, article_mappings, None)
    assert not matches_criteria(_sale('D', 'A200', 1, 1), scheme, article_mappings, None)
    # Unknown articles are excluded once a catalog filter is set
    assert not matches_criteria(_sale('D', 'A999', 1, 1), scheme, article_mappings, None)


def test_booster_explicit_article_list(article_mappings):
    scheme = {'type': 'booster-scheme',
              'catalogType': {'article': 'others', 'specificArticleIds': ' A200, A999 ', 'family': 'Fans'}}

    assert matches_criteria(_sale('D', 'A999', 1, 1), scheme, article_mappings, None)
    assert not matches_criteria(_sale('D', 'A100', 1, 1), scheme, article_mappings, None)


def test_quantity_slabs_with_percentage_commission(distributors):
    scheme = {'id': 's1', 'name': 'Booster', 'type': 'booster-scheme', 'slabType': 'quantity',
              'commissionType': 'percentage', 'slabs': SLABS}
    sales = [_sale('DIST001', 'A100', 30, 3000, 'INV1'), _sale('DIST001', 'A100', 30, 3000, 'INV2'),
             _sale('DIST002', 'A100', 10, 500, 'INV3')]

    details, article_summary = calculate_scheme(scheme, sales, distributors)

    assert len(details) == 3
    # 60 units fall in the 51-100 slab: 2% of 6000
    assert details[0]['totalGroupCommission'] == pytest.approx(120)
    assert details[0]['commission'] == pytest.approx(60)
    assert details[0]['saleContribution'] == pytest.approx(0.5)
    assert details[0]['distributorName'] == 'ABC Ltd'
    assert details[2]['commission'] == pytest.approx(5)

    by_distributor = {s['distributorId']: s for s in article_summary}
    assert by_distributor['DIST001']['salesCount'] == 2
    assert by_distributor['DIST001']['slabRate'] == 2
    assert by_distributor['DIST001']['commission'] == pytest.approx(120)


def test_value_slabs_use_absolute_value():
    scheme = {'type': 'booster-scheme', 'slabType': 'value', 'commissionType': 'absolute_per_unit',
              'slabs': [{'min': 0, 'max': 999, 'rate': 1}, {'min': 1000, 'max': 0, 'rate': 4}]}

    details, _ = calculate_scheme(scheme, [_sale('D9', 'A1', 5, 1500)])

    assert details[0]['slabRate'] == 4
    assert details[0]['commission'] == pytest.approx(20)
    assert details[0]['distributorName'] == 'Distributor D9'


def test_negative_group_quantity_earns_nothing():
    scheme = {'type': 'booster-scheme', 'commissionType': 'fixed', 'slabs': [{'min': 0, 'rate': 100}]}
    sales = [_sale('D1', 'A1', 5, 500), _sale('D1', 'A1', -8, -800)]

    details, summary = calculate_scheme(scheme, sales)

    assert [d['commission'] for d in details] == [0, 0]
    assert summary[0]['commission'] == 0


def test_article_scheme_fixed_commission_goes_to_first_sale():
    scheme = {'type': 'article', 'commissionType': 'fixed', 'articleCommissions': {'A100': 250}}
    sales = [_sale('D1', 'A100', 2, 200, 'INV1'), _sale('D1', 'A100', 3, 300, 'INV2'), _sale('D1', 'A200', 1, 100, 'INV3')]

    details, summary = calculate_scheme(scheme, sales)

    assert [(d['billingDocument'], d['commission']) for d in details] == [('INV1', 250), ('INV2', 0), ('INV3', 0)]
    assert [d['saleContribution'] for d in details[:2]] == [1, 0]
    assert summary[0]['commission'] == 250


@pytest.mark.parametrize("commission_type, expected", [
    ('absolute', 50), ('absolute_per_unit', 50), ('percentage', 40)
])
def test_article_scheme_commission_types(commission_type, expected):
    scheme = {'type': 'article-scheme', 'commissionType': commission_type, 'articleCommissions': {'A100': '10'}}

    details, _ = calculate_scheme(scheme, [_sale('D1', 'A100', 5, 400)])

    assert details[0]['commission'] == pytest.approx(expected)


def test_non_numeric_sale_values_are_treated_as_zero():
    scheme = {'type': 'booster-scheme', 'commissionType': 'absolute', 'slabs': [{'min': 0, 'rate': 2}]}

    details, _ = calculate_scheme(scheme, [_sale('D1', 'A1', 'abc', None), _sale('D1', 'A1', '4', '10')])

    assert details[0]['totalGroupQuantity'] == 4
    assert details[0]['commission'] == 0
    assert details[1]['commission'] == pytest.approx(8)
