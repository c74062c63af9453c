# ==============================================================================
# scheme_manager/calculator/engine.py
# ------------------------------------------------------------------------------
# Calculates scheme commissions for a set of sales records.
# Pass 1 filters sales by the scheme's eligibility criteria and groups them
# per distributor and article. Pass 2 prices each group from per-article
# rates or the slab table. Pass 3 spreads each group's commission over its
# sales.
# ==============================================================================

import logging
import math

from .summary import build_distributor_article_summary, to_number

ARTICLE_SCHEME = 'article-scheme'
BOOSTER_SCHEME = 'booster-scheme'

# Form-level names accepted for the two scheme types
SCHEME_TYPE_ALIASES = {
    'per_unit': BOOSTER_SCHEME,
    'article': ARTICLE_SCHEME
}

SLAB_TYPES = ('quantity', 'value')
COMMISSION_TYPES = ('percentage', 'absolute', 'absolute_per_unit', 'fixed')

# Filter values meaning "no restriction"
_ANY_ZONE, _ANY_STATE, _ANY_TYPE = 'all-zones', 'all-states', 'all-types'
_ANY_FAMILY, _ANY_CLASS, _ANY_BRAND = 'all-families', 'all-classes', 'all-brands'


def normalize_scheme_type(scheme_type):
    if not scheme_type:
        logging.warning("Could not determine scheme type, defaulting to article-scheme")
        return ARTICLE_SCHEME
    return SCHEME_TYPE_ALIASES.get(scheme_type, scheme_type)


def _is_set(value, wildcard):
    return bool(value) and value != wildcard


def _in_specific_ids(selection, value):
    """True unless `selection` restricts to a non-empty id list that lacks `value`."""
    selection = selection or {}
    if selection.get('type') in ('specific', 'other') and selection.get('specificIds'):
        return value in selection['specificIds']
    return True


def matches_criteria(sale, scheme, article_mappings, distributor):
    """
    Decides whether one sale is eligible for a scheme.

    Args:
        sale (dict): A sales record (camelCase keys).
        scheme (dict): Scheme as returned by Scheme.to_dict().
        article_mappings (dict): articleCode -> catalog attributes, may be empty.
        distributor (dict or None): The sale's distributor, if known.
    """
    dist_ids = scheme.get('distIds') or {}
    if dist_ids.get('type') == 'all':
        filters = scheme.get('distributorData') or {}
        for key, attribute, wildcard in (('zone', 'zone', _ANY_ZONE),
                                         ('state', 'state', _ANY_STATE),
                                         ('distributorType', 'type', _ANY_TYPE)):
            wanted = filters.get(key)
            if _is_set(wanted, wildcard) and (not distributor or distributor.get(attribute) != wanted):
                return False

    if not _in_specific_ids(dist_ids, sale.get('distributorId')):
        return False
    if not _in_specific_ids(scheme.get('articles'), sale.get('articleId')):
        return False

    scheme_type = SCHEME_TYPE_ALIASES.get(scheme.get('type'), scheme.get('type'))
    if scheme_type == BOOSTER_SCHEME and article_mappings:
        catalog = scheme.get('catalogType') or {}

        if catalog.get('article') == 'others' and catalog.get('specificArticleIds'):
            article_ids = [a.strip() for a in str(catalog['specificArticleIds']).split(',') if a.strip()]
            return not article_ids or sale.get('articleId') in article_ids

        mapping = article_mappings.get(sale.get('articleId'))
        if not mapping:
            return not (catalog.get('family') or catalog.get('class') or catalog.get('brand'))

        for key, attribute, wildcard in (('family', 'familyName', _ANY_FAMILY),
                                         ('class', 'className', _ANY_CLASS),
                                         ('brand', 'brandName', _ANY_BRAND)):
            wanted = catalog.get(key)
            if _is_set(wanted, wildcard) and mapping.get(attribute) != wanted:
                return False

    return True


def _slab_bound(value, default):
    number = to_number(value)
    return number if number else default


def find_slab_rate(slabs, comparison_value):
    """
    Rate of the first slab (sorted by min) whose [min, max] holds the value.
    A slab without a max is unbounded. If none holds it, the last slab whose
    min was reached applies. Returns None when no slab applies.
    """
    sorted_slabs = sorted(slabs or [], key=lambda s: to_number(s.get('min')))

    for slab in sorted_slabs:
        if _slab_bound(slab.get('min'), 0) <= comparison_value <= _slab_bound(slab.get('max'), math.inf):
            return to_number(slab.get('rate'))

    reached = None
    for slab in sorted_slabs:
        if comparison_value >= _slab_bound(slab.get('min'), 0):
            reached = to_number(slab.get('rate'))
    return reached


def apply_commission_type(commission_type, rate, total_quantity, total_value):
    if commission_type == 'percentage':
        return total_value * rate / 100
    if commission_type in ('absolute', 'absolute_per_unit'):
        return rate * total_quantity
    if commission_type == 'fixed':
        return rate
    logging.warning(f"Unknown commission type '{commission_type}'; commission set to 0")
    return 0.0


def price_group(group, scheme_type, slab_type, commission_type, slabs, article_commissions):
    """Returns (slab_rate, commission) for one distributor+article group."""
    if group['totalQuantity'] < 0:
        return 0.0, 0.0

    if scheme_type == ARTICLE_SCHEME and article_commissions:
        rate = article_commissions.get(group['articleId'])
        if rate is None:
            logging.debug(f"No commission data for article {group['articleId']} in article scheme")
            return 0.0, 0.0
        rate = to_number(rate)
        return rate, apply_commission_type(commission_type, rate, group['totalQuantity'], group['totalValue'])

    comparison_value = abs(group['totalValue'] if slab_type == 'value' else group['totalQuantity'])
    rate = find_slab_rate(slabs, comparison_value)
    if rate is None:
        logging.debug(f"No slab reached for {group['distributorId']}:{group['articleId']} at {comparison_value}")
        return 0.0, 0.0
    return rate, apply_commission_type(commission_type, rate, group['totalQuantity'], group['totalValue'])


def _distributor_lookup(distributors):
    """Index distributors by business id and by code."""
    lookup = {}
    for distributor in distributors or []:
        if distributor.get('id'):
            lookup[distributor['id']] = distributor
        if distributor.get('code') and distributor['code'] != distributor.get('id'):
            lookup[distributor['code']] = distributor
    return lookup


def calculate_scheme(scheme, sales, distributors=None, article_mappings=None):
    """
    Runs one scheme over the sales records.

    Returns:
        tuple: (details, article_summary) where details holds one
               CalculationDetail dict per eligible sale and article_summary
               one DistributorArticleSummary dict per group.
    """
    scheme_type = normalize_scheme_type(scheme.get('type'))
    slab_type = scheme.get('slabType') or 'quantity'
    commission_type = scheme.get('commissionType') or 'percentage'
    slabs = scheme.get('slabs') or []
    article_commissions = scheme.get('articleCommissions') or {}
    article_mappings = article_mappings or {}

    logging.info("=" * 80)
    logging.info(f"STARTING CALCULATION for scheme '{scheme.get('name')}' ({scheme.get('id')})")
    logging.info(f"  type={scheme_type} slabType={slab_type} commissionType={commission_type} "
                 f"slabs={len(slabs)} sales={len(sales)}")
    logging.info("=" * 80)

    distributor_lookup = _distributor_lookup(distributors)

    logging.info("--- Pass 1: Filtering and grouping sales ---")
    groups = {}
    for sale in sales:
        distributor = distributor_lookup.get(sale.get('distributorId'))
        if not matches_criteria(sale, scheme, article_mappings, distributor):
            continue

        key = f"{sale.get('distributorId')}:{sale.get('articleId')}"
        group = groups.setdefault(key, {
            'distributorId': sale.get('distributorId'),
            'distributorName': (distributor or {}).get('name') or f"Distributor {sale.get('distributorId')}",
            'articleId': sale.get('articleId'),
            'totalQuantity': 0.0,
            'totalValue': 0.0,
            'sales': []
        })
        group['totalQuantity'] += to_number(sale.get('billingQuantity'))
        group['totalValue'] += to_number(sale.get('netSales'))
        group['sales'].append(sale)
    logging.info(f"Grouped into {len(groups)} distributor-article combinations")

    logging.info("--- Pass 2 & 3: Pricing groups and spreading commission over sales ---")
    details = []
    for group in groups.values():
        slab_rate, commission = price_group(
            group, scheme_type, slab_type, commission_type, slabs, article_commissions
        )

        for index, sale in enumerate(group['sales']):
            quantity = to_number(sale.get('billingQuantity'))
            if scheme_type == ARTICLE_SCHEME and commission_type == 'fixed':
                # A fixed amount is paid once per group
                contribution = 1.0 if index == 0 else 0.0
            else:
                contribution = quantity / group['totalQuantity'] if group['totalQuantity'] != 0 else 0.0

            details.append({
                'monthOfBillingDate': sale.get('monthOfBillingDate'),
                'dayOfBillingDate': sale.get('dayOfBillingDate'),
                'distributorId': group['distributorId'],
                'distributorName': group['distributorName'],
                'articleId': group['articleId'],
                'billingQuantity': quantity,
                'netSales': to_number(sale.get('netSales')),
                'billingDocument': sale.get('billingDocument'),
                'commission': commission * contribution,
                'schemeType': scheme_type,
                'totalGroupQuantity': group['totalQuantity'],
                'totalGroupValue': group['totalValue'],
                'slabRate': slab_rate,
                'totalGroupCommission': commission,
                'saleContribution': contribution,
                'commissionType': commission_type,
                'slabType': slab_type
            })

    article_summary = build_distributor_article_summary(details)
    total = sum(d['commission'] for d in details)
    logging.info(f"Calculation finished: {len(details)} details, total commission {total:,.2f}")
    return details, article_summary
