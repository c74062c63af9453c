# ==============================================================================
# scheme_manager/main/utils.py
# ------------------------------------------------------------------------------
# Database helpers shared by the API routes: saving validated upload records
# and rebuilding calculation payloads from stored runs.
# ==============================================================================

import json
import logging
import uuid
from datetime import datetime

from sqlalchemy import func, or_

from scheme_manager import db
from scheme_manager.calculator.summary import (build_distributor_article_summary,
                                               create_distributor_scheme_summary, summarize_calculation)
from scheme_manager.ingest.validator import create_category_mappings, create_distributor_code
from scheme_manager.models import AppSetting, CategoryArticle, Distributor, SalesRecord


def find_distributor(identifier):
    """Looks a distributor up by business id, falling back to its code."""
    return (Distributor.query.filter_by(distributor_id=identifier).first()
            or Distributor.query.filter_by(code=identifier).first())


def search_distributors(query):
    """Case-insensitive match on id, code or name."""
    pattern = f"%{query.lower()}%"
    return Distributor.query.filter(or_(
        func.lower(Distributor.distributor_id).like(pattern),
        func.lower(Distributor.code).like(pattern),
        func.lower(Distributor.name).like(pattern)
    )).order_by(Distributor.distributor_id).all()


def save_distributors(records):
    """
    Upserts distributor dicts (id, name, type, zone, state, optional status)
    keyed on the business id. Does not commit.

    Returns:
        tuple: (created_count, updated_count)
    """
    created, updated = 0, 0
    existing = {
        d.distributor_id: d for d in
        Distributor.query.filter(Distributor.distributor_id.in_([r['id'] for r in records])).all()
    }

    for record in records:
        distributor = existing.get(record['id'])
        if distributor is None:
            distributor = Distributor(distributor_id=record['id'], status=record.get('status') or 'active')
            db.session.add(distributor)
            existing[record['id']] = distributor
            created += 1
        else:
            updated += 1
            if record.get('status'):
                distributor.status = record['status']

        distributor.name = record['name']
        distributor.type = record['type']
        distributor.zone = record['zone']
        distributor.state = record['state']
        distributor.code = create_distributor_code(record['name'], record['type'], record['id'])

    logging.info(f"Saving distributors: {created} new, {updated} updated")
    return created, updated


def set_json_setting(key, value, description=None):
    """Creates or replaces a JSON-typed AppSetting. Does not commit."""
    setting = AppSetting.query.filter_by(key=key).first()
    if setting is None:
        setting = AppSetting(key=key, value_type='json', description=description)
        db.session.add(setting)
    setting.value = json.dumps(value, ensure_ascii=False)
    setting.value_type = 'json'
    return setting


def replace_category_data(valid_records, file_name):
    """Replaces the whole catalog with the given CategoryRecords. Does not commit."""
    deleted = CategoryArticle.query.delete()
    uploaded_at = datetime.utcnow()
    # Later rows for the same article code win
    by_article = {record.article_code: record for record in valid_records}
    for record in by_article.values():
        db.session.add(CategoryArticle(
            family_code=record.family_code, family_name=record.family_name,
            class_code=record.class_code, class_name=record.class_name,
            brand_code=record.brand_code, brand_name=record.brand_name,
            article_code=record.article_code, article_description=record.article_description,
            file_name=file_name, uploaded_at=uploaded_at
        ))
    logging.info(f"Category catalog replaced: {deleted} rows removed, {len(by_article)} articles stored")
    return len(by_article)


def load_category_mappings():
    """Derived category lookups built from the stored catalog rows."""
    return create_category_mappings(CategoryArticle.query.order_by(CategoryArticle.id).all())


def store_sales_records(records, month, year, file_name):
    """
    Appends SalesRows to the sales table under one new upload id.
    Does not commit.
    """
    upload_id = f"upload_{uuid.uuid4().hex[:12]}"
    uploaded_at = datetime.utcnow()
    db.session.bulk_save_objects([
        SalesRecord(
            month_of_billing_date=r.month_of_billing_date, day_of_billing_date=r.day_of_billing_date,
            distributor_id=r.distributor_id, article_id=r.article_id,
            billing_quantity=r.billing_quantity, net_sales=r.net_sales,
            billing_document=r.billing_document,
            upload_id=upload_id, upload_month=month, upload_year=year,
            file_name=file_name, uploaded_at=uploaded_at
        )
        for r in records
    ])
    logging.info(f"Stored {len(records)} sales records as {upload_id} ({month} {year}, '{file_name}')")
    return upload_id


def calculation_overview(run):
    """Run metadata plus headline totals, without the per-sale details."""
    details = run.get_details()
    overview = {
        'id': run.calculation_id,
        'schemeId': run.scheme.scheme_id if run.scheme else None,
        'schemeName': run.scheme_name,
        'calculatedAt': run.calculated_at.isoformat() if run.calculated_at else None
    }
    overview.update(summarize_calculation(details))
    return overview


def calculation_summaries(run):
    """The distributor+article and distributor scheme summaries for a stored run."""
    article_summary = build_distributor_article_summary(run.get_details())
    return {
        'distributorArticleSummary': article_summary,
        'distributorSchemeSummary': create_distributor_scheme_summary(article_summary)
    }
