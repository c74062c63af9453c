# ==============================================================================
# scheme_manager/calculator/summary.py
# ------------------------------------------------------------------------------
# Rolls per-sale calculation details up into distributor+article summaries
# and per-distributor scheme summaries. Nothing here is persisted; stored
# runs keep only their details and these are rebuilt on request.
# ==============================================================================

import logging
import math


def to_number(value):
    """Numeric value of `value`, or 0.0 when it is missing or not a number."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).replace(',', '')) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def build_distributor_article_summary(details):
    """
    One summary per distributorId:articleId from CalculationDetail dicts.

    Slab rate, group commission and the commission settings come from the
    first detail of each group; every detail of a group carries the same
    group-level values.
    """
    groups = {}

    for detail in details:
        key = f"{detail.get('distributorId')}:{detail.get('articleId')}"
        group = groups.get(key)
        if group is None:
            slab_type = detail.get('slabType') or 'quantity'
            total_quantity = to_number(detail.get('totalGroupQuantity'))
            total_value = to_number(detail.get('totalGroupValue'))
            group = groups[key] = {
                'distributorId': detail.get('distributorId'),
                'distributorName': detail.get('distributorName'),
                'articleId': detail.get('articleId'),
                'totalQuantity': total_quantity,
                'totalValue': total_value,
                'slabRate': to_number(detail.get('slabRate')),
                'commission': to_number(detail.get('totalGroupCommission')),
                'salesCount': 0,
                'comparisonValue': abs(total_value if slab_type == 'value' else total_quantity),
                'slabType': slab_type,
                'commissionType': detail.get('commissionType') or 'percentage'
            }
        group['salesCount'] += 1

    return list(groups.values())


def create_distributor_scheme_summary(article_summaries):
    """
    Aggregates distributor+article summaries into one entry per distributor.

    The first name seen for a distributor is kept. Missing or non-numeric
    amounts count as zero. `uniqueArticles` is de-duplicated and sorted.
    """
    distributors = {}
    articles = {}

    for summary in article_summaries:
        distributor_id = summary.get('distributorId')
        entry = distributors.setdefault(distributor_id, {
            'distributorId': distributor_id,
            'distributorName': summary.get('distributorName'),
            'totalQuantity': 0.0,
            'totalValue': 0.0,
            'totalCommission': 0.0,
            'totalSalesCount': 0,
            'uniqueArticles': []
        })
        entry['totalQuantity'] += to_number(summary.get('totalQuantity'))
        entry['totalValue'] += to_number(summary.get('totalValue'))
        entry['totalCommission'] += to_number(summary.get('commission'))
        entry['totalSalesCount'] += int(to_number(summary.get('salesCount')))
        if summary.get('articleId') is not None:
            articles.setdefault(distributor_id, set()).add(str(summary['articleId']))

    for distributor_id, entry in distributors.items():
        entry['uniqueArticles'] = sorted(articles.get(distributor_id, set()))

    logging.debug(f"Built scheme summary for {len(distributors)} distributors")
    return list(distributors.values())


def summarize_calculation(details):
    """Headline totals for one calculation run."""
    combinations = {f"{d.get('distributorId')}:{d.get('articleId')}" for d in details}
    return {
        'totalCommission': sum(to_number(d.get('commission')) for d in details),
        'uniqueDistributors': len({d.get('distributorId') for d in details}),
        'uniqueArticles': len({d.get('articleId') for d in details}),
        'totalRecords': len(details),
        'totalDistributorArticleCombinations': len(combinations)
    }
