# ==============================================================================
# scheme_manager/ingest/batches.py
# ------------------------------------------------------------------------------
# Groups stored sales records back into the uploads they arrived in.
# ==============================================================================

import hashlib
import logging
from datetime import datetime

DEFAULT_MONTH = 'Unknown'
DEFAULT_FILE_NAME = 'sales_data.csv'


def _upload_date(uploaded_at, now):
    """Date part of an ISO timestamp string or datetime."""
    if not uploaded_at:
        return now.date().isoformat()
    if isinstance(uploaded_at, datetime):
        return uploaded_at.date().isoformat()
    return str(uploaded_at).split('T')[0]


def batch_id(month, year, file_name, upload_date):
    """
    Batch ids hash the grouping key, so the same upload gets the same id
    no matter how the records were ordered when fetched.
    """
    key = f"{month}|{year}|{file_name}|{upload_date}"
    digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:10]
    return f"upload_{digest}_{month}_{year}"


def group_upload_batches(records, now=None):
    """
    Groups sales record dicts (as returned by SalesRecord.to_dict()) by
    (uploadMonth, uploadYear, fileName, date of uploadedAt).

    Returns:
        list: One dict per batch with id, fileName, month, year, uploadedAt,
              recordCount and data (the member records), newest upload first.
    """
    now = now or datetime.utcnow()
    batches = {}

    for record in records:
        month = record.get('uploadMonth') or DEFAULT_MONTH
        year = record.get('uploadYear') or now.year
        file_name = record.get('fileName') or DEFAULT_FILE_NAME
        upload_date = _upload_date(record.get('uploadedAt'), now)

        key = (month, year, file_name, upload_date)
        batch = batches.setdefault(key, {
            'id': batch_id(month, year, file_name, upload_date),
            'fileName': file_name,
            'month': month,
            'year': year,
            'uploadedAt': record.get('uploadedAt') or now.isoformat(),
            'data': []
        })
        batch['data'].append(record)

    result = list(batches.values())
    for batch in result:
        batch['recordCount'] = len(batch['data'])
    result.sort(key=lambda b: str(b['uploadedAt']), reverse=True)

    logging.info(f"Grouped {len(records)} sales records into {len(result)} upload batches")
    return result
