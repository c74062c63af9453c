# ==============================================================================
# scheme_manager/ingest/validator.py
# ------------------------------------------------------------------------------
# Maps parsed rows to typed records and validates them. Whole-file problems
# end up in UploadReport.rejection; row problems are attached to each record
# and flattened into UploadReport.errors so every row can be reported.
# ==============================================================================

import logging
import math
from dataclasses import dataclass, field

import pandas as pd

from .errors import FileStructureError, SizeLimitError
from .headers import require_header_mapping
from .parser import read_tabular_file
from .schema import (ARTICLE_COMMISSION_HEADERS, CATEGORY_FIELD_LABELS, CATEGORY_HEADERS,
                     DISTRIBUTOR_FIELD_LABELS, DISTRIBUTOR_HEADERS, ROW_NUMBER_OFFSET, SALES_HEADERS,
                     SALES_NUMERIC_FIELDS)


@dataclass
class DistributorRecord:
    id: str
    name: str
    type: str
    zone: str
    state: str
    row_number: int = 0
    errors: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name, 'type': self.type,
            'zone': self.zone, 'state': self.state,
            'rowNumber': self.row_number, 'errors': list(self.errors)
        }


@dataclass
class CategoryRecord:
    family_code: str
    family_name: str
    class_code: str
    class_name: str
    brand_code: str
    brand_name: str
    article_code: str
    article_description: str
    row_number: int = 0
    errors: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    def to_dict(self):
        return {
            'familyCode': self.family_code, 'familyName': self.family_name,
            'classCode': self.class_code, 'className': self.class_name,
            'brandCode': self.brand_code, 'brandName': self.brand_name,
            'articleCode': self.article_code, 'articleDescription': self.article_description,
            'rowNumber': self.row_number, 'errors': list(self.errors)
        }


@dataclass
class SalesRow:
    month_of_billing_date: str
    day_of_billing_date: str
    distributor_id: str
    article_id: str
    billing_quantity: float
    net_sales: float
    billing_document: str
    row_number: int = 0
    errors: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    def to_dict(self):
        return {
            'monthOfBillingDate': self.month_of_billing_date,
            'dayOfBillingDate': self.day_of_billing_date,
            'distributorId': self.distributor_id,
            'articleId': self.article_id,
            'billingQuantity': self.billing_quantity,
            'netSales': self.net_sales,
            'billingDocument': self.billing_document
        }


@dataclass
class UploadReport:
    """
    Outcome of running one file through a pipeline.

    `rejection` is set when the whole file was refused; `records` is then
    empty. Otherwise every mapped row is present in `records`, valid or not.
    """
    records: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    rejection: str = None

    @property
    def valid_records(self):
        return [r for r in self.records if r.is_valid]

    @property
    def invalid_records(self):
        return [r for r in self.records if not r.is_valid]

    def to_dict(self):
        return {
            'rejection': self.rejection,
            'records': [r.to_dict() for r in self.records],
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'totalRecords': len(self.records),
            'validRecords': len(self.valid_records),
            'invalidRecords': len(self.invalid_records),
            'errorCount': len(self.errors)
        }


def _row_number(index):
    return index + ROW_NUMBER_OFFSET


def _has_enough_columns(values, mapping):
    return len(values) >= max(mapping.values()) + 1


def _row_errors(record):
    return [f"Row {record.row_number}: {message}" for message in record.errors]


# --- Distributors ---

def validate_distributor_record(record, reference):
    """
    Appends a message to record.errors for each failed rule:
    required fields, known type code, known zone, state within zone.
    """
    for field_name, label in DISTRIBUTOR_FIELD_LABELS.items():
        if not getattr(record, field_name):
            record.errors.append(f"{label} is required")

    type_codes = reference.type_codes
    if record.type and record.type not in type_codes:
        record.errors.append(f"Invalid type: {record.type}. Valid types: {', '.join(type_codes)}")

    if record.zone and record.zone not in reference.zones:
        record.errors.append(f"Invalid zone: {record.zone}. Valid zones: {', '.join(reference.zones)}")

    zone_states = reference.states_for_zone(record.zone)
    if record.zone and record.state and zone_states and record.state not in zone_states:
        record.errors.append(
            f"State {record.state} is not valid for zone {record.zone}. "
            f"Valid states: {', '.join(zone_states)}"
        )
    return record.errors


def map_distributor_rows(headers, rows, reference):
    """
    Returns (records, errors). Raises FileStructureError if a column is missing.
    Rows too short for the mapped columns are reported and left out.
    """
    mapping = require_header_mapping(headers, DISTRIBUTOR_HEADERS)
    records = []
    errors = []

    for index, values in enumerate(rows):
        if not _has_enough_columns(values, mapping):
            errors.append(f"Row {_row_number(index)}: Insufficient columns")
            continue

        record = DistributorRecord(
            id=values[mapping['id']],
            name=values[mapping['name']],
            type=values[mapping['type']],
            zone=values[mapping['zone']],
            state=values[mapping['state']],
            row_number=_row_number(index)
        )
        validate_distributor_record(record, reference)
        logging.debug(f"Processed distributor row {record.row_number}: {record}")
        records.append(record)
        errors.extend(_row_errors(record))

    return records, errors


def process_distributor_rows(headers, rows, reference):
    try:
        records, errors = map_distributor_rows(headers, rows, reference)
    except FileStructureError as e:
        return UploadReport(rejection=str(e))

    report = UploadReport(records=records, errors=errors)
    logging.info(f"Distributor file: {len(records)} records, {len(report.valid_records)} valid, {len(errors)} errors")
    return report


def process_distributor_upload(data, filename, reference):
    """Parses and validates a distributor CSV/Excel upload."""
    try:
        headers, rows = read_tabular_file(data, filename)
    except FileStructureError as e:
        logging.warning(f"Rejected distributor file '{filename}': {e}")
        return UploadReport(rejection=str(e))
    return process_distributor_rows(headers, rows, reference)


def create_distributor_code(name, distributor_type, distributor_id):
    """e.g. ('ABC Electronics', 'P1', 'DIST001') -> 'P1_ABC_DIST001'"""
    prefix = distributor_type or 'DIST'
    name_part = ''.join((name or '').split())[:3].upper()
    return f"{prefix}_{name_part}_{distributor_id}"


# --- Category catalog ---

def validate_category_record(record):
    for field_name, label in CATEGORY_FIELD_LABELS.items():
        if not getattr(record, field_name):
            record.errors.append(f"{label} is required")
    return record.errors


def map_category_rows(headers, rows):
    mapping = require_header_mapping(headers, CATEGORY_HEADERS)
    records = []
    errors = []

    for index, values in enumerate(rows):
        if not _has_enough_columns(values, mapping):
            errors.append(f"Row {_row_number(index)}: Insufficient columns")
            continue

        record = CategoryRecord(
            row_number=_row_number(index),
            **{field_name: values[column] for field_name, column in mapping.items()}
        )
        validate_category_record(record)
        records.append(record)
        errors.extend(_row_errors(record))

    return records, errors


def process_category_upload(data, filename):
    """Parses and validates an article catalog CSV/Excel upload."""
    try:
        headers, rows = read_tabular_file(data, filename)
        records, errors = map_category_rows(headers, rows)
    except FileStructureError as e:
        logging.warning(f"Rejected category file '{filename}': {e}")
        return UploadReport(rejection=str(e))

    report = UploadReport(records=records, errors=errors)
    logging.info(f"Category file: {len(records)} records, {len(report.valid_records)} valid")
    return report


def _unique_in_order(values):
    return list(dict.fromkeys(values))


def create_category_mappings(valid_records):
    """
    Derives the lookup tables used by scheme criteria from catalog records.
    Top-level lists are sorted; nested lists keep first-seen order.
    """
    family_classes = {}
    family_brands = {}
    class_brands = {}
    article_mappings = {}

    for record in valid_records:
        family_classes.setdefault(record.family_name, []).append(record.class_name)
        family_brands.setdefault(record.family_name, []).append(record.brand_name)
        class_brands.setdefault(record.class_name, []).append(record.brand_name)
        article_mappings[record.article_code] = {
            'familyName': record.family_name,
            'className': record.class_name,
            'brandName': record.brand_name,
            'familyCode': record.family_code,
            'classCode': record.class_code,
            'brandCode': record.brand_code,
            'articleDescription': record.article_description
        }

    return {
        'families': sorted({r.family_name for r in valid_records}),
        'classes': sorted({r.class_name for r in valid_records}),
        'brands': sorted({r.brand_name for r in valid_records}),
        'familyClassMapping': {k: _unique_in_order(v) for k, v in family_classes.items()},
        'familyBrandMapping': {k: _unique_in_order(v) for k, v in family_brands.items()},
        'classBrandMapping': {k: _unique_in_order(v) for k, v in class_brands.items()},
        'articleMappings': article_mappings
    }


# --- Sales ---

def map_sales_rows(headers, rows, max_records):
    """
    Returns (records, errors, warnings).

    The size limit is checked before anything else. Quantity and value cells
    that are not numbers are stored as 0 and listed in `warnings`.
    """
    if len(rows) > max_records:
        raise SizeLimitError(len(rows), max_records)

    mapping = require_header_mapping(headers, SALES_HEADERS)
    errors = []
    kept_rows = []
    row_numbers = []

    for index, values in enumerate(rows):
        if not _has_enough_columns(values, mapping):
            errors.append(f"Row {_row_number(index)}: Insufficient columns")
            continue
        kept_rows.append([values[column] for column in mapping.values()])
        row_numbers.append(_row_number(index))

    if not kept_rows:
        return [], errors, []

    sales_df = pd.DataFrame(kept_rows, columns=list(mapping))
    warnings = []

    for col, label in SALES_NUMERIC_FIELDS.items():
        # Coerce to numeric, making non-numbers NaN
        numeric_series = pd.to_numeric(sales_df[col].str.replace(',', '', regex=False), errors='coerce')
        # inf, -Infinity and overflowing literals count as non-numbers too
        numeric_series = numeric_series.replace([math.inf, -math.inf], math.nan)
        # Find rows where the original value was not empty but the numeric version is NaN
        invalid_mask = numeric_series.isna() & (sales_df[col] != '')
        for position in sales_df.index[invalid_mask]:
            warnings.append(
                f"Row {row_numbers[position]}: {label} '{sales_df.at[position, col]}' is not a number; treated as 0"
            )
        sales_df[col] = numeric_series.fillna(0.0).astype(float)

    records = [
        SalesRow(
            month_of_billing_date=row['monthOfBillingDate'],
            day_of_billing_date=row['dayOfBillingDate'],
            distributor_id=row['distributorId'],
            article_id=row['articleId'],
            billing_quantity=float(row['billingQuantity']),
            net_sales=float(row['netSales']),
            billing_document=row['billingDocument'],
            row_number=row_number
        )
        for row, row_number in zip(sales_df.to_dict(orient='records'), row_numbers)
    ]

    if warnings:
        logging.warning(f"{len(warnings)} non-numeric quantity/value cells were treated as 0")
    return records, errors, warnings


def process_sales_upload(data, filename, max_records):
    """Parses a sales CSV/Excel upload into SalesRow records."""
    try:
        headers, rows = read_tabular_file(data, filename)
        records, errors, warnings = map_sales_rows(headers, rows, max_records)
    except FileStructureError as e:
        logging.warning(f"Rejected sales file '{filename}': {e}")
        return UploadReport(rejection=str(e))

    logging.info(f"Sales file '{filename}': {len(records)} records parsed")
    return UploadReport(records=records, errors=errors, warnings=warnings)


# --- Article commissions ---

@dataclass
class ArticleCommissionRecord:
    article_id: str
    commission: float
    row_number: int = 0
    errors: list = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors

    def to_dict(self):
        return {'articleId': self.article_id, 'commission': self.commission, 'rowNumber': self.row_number}


def _parse_commission(value):
    try:
        number = float(value.replace(',', ''))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def map_article_commission_rows(headers, rows):
    """
    Returns (records, errors). Rows without an article id or with a
    commission that is not a number are reported and skipped.
    """
    mapping = require_header_mapping(headers, ARTICLE_COMMISSION_HEADERS)
    records = []
    errors = []

    for index, values in enumerate(rows):
        row_number = _row_number(index)
        if not _has_enough_columns(values, mapping):
            errors.append(f"Row {row_number}: Insufficient columns")
            continue

        article_id = values[mapping['article_id']]
        raw_commission = values[mapping['commission']]
        if not article_id:
            errors.append(f"Row {row_number}: Missing Article ID")
            continue

        commission = _parse_commission(raw_commission)
        if commission is None:
            errors.append(f'Row {row_number}: Invalid commission value "{raw_commission}"')
            continue

        records.append(ArticleCommissionRecord(article_id, commission, row_number))

    return records, errors


def process_article_commission_upload(data, filename):
    """
    Parses an Article ID / Commission file for an article scheme.
    The file is rejected only when no row yields a commission.
    """
    try:
        headers, rows = read_tabular_file(data, filename)
        records, errors = map_article_commission_rows(headers, rows)
    except FileStructureError as e:
        logging.warning(f"Rejected article commission file '{filename}': {e}")
        return UploadReport(rejection=str(e))

    if not records:
        return UploadReport(errors=errors, rejection="No valid article commissions found")

    logging.info(f"Article commission file '{filename}': {len(records)} articles, {len(errors)} rows skipped")
    return UploadReport(records=records, errors=errors)


def article_commission_mapping(records):
    """articleId -> commission; a repeated article keeps its last value."""
    return {record.article_id: record.commission for record in records}
