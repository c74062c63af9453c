# ==============================================================================
# scheme_manager/main/routes.py
# ------------------------------------------------------------------------------
# Defines the JSON API of the main blueprint (mounted under /api).
# This file acts as the controller between uploads, storage and the engine.
# ==============================================================================

import os
import json
import uuid
from datetime import datetime
from flask import request, jsonify, current_app, Response
from werkzeug.utils import secure_filename

from scheme_manager import db
from scheme_manager.main import bp
from scheme_manager.models import CalculationRun, CategoryArticle, Distributor, SalesRecord, Scheme
from scheme_manager.ingest.batches import group_upload_batches
from scheme_manager.ingest.reference import ZONE_STATE_MAPPING_KEY, load_reference_data
from scheme_manager.ingest.schema import ARTICLE_COMMISSION_TEMPLATE_ROWS, DISTRIBUTOR_TEMPLATE_ROWS
from scheme_manager.ingest.validator import (DistributorRecord, article_commission_mapping,
                                             process_article_commission_upload, process_category_upload,
                                             process_distributor_upload, process_sales_upload,
                                             validate_distributor_record)
from scheme_manager.calculator.engine import calculate_scheme, normalize_scheme_type
from scheme_manager.main.forms import (CalculateForm, DistributorForm, DistributorStatusForm,
                                       DistributorUpdateForm, SalesUploadForm, SchemeForm, UploadForm)
from scheme_manager.main.utils import (calculation_overview, calculation_summaries, find_distributor,
                                       load_category_mappings, replace_category_data, save_distributors,
                                       search_distributors, set_json_setting, store_sales_records)

# --- Helper Functions ---

def error_response(message, status=400, **extra):
    payload = {'success': False, 'error': message}
    payload.update(extra)
    return jsonify(payload), status

def read_upload(file_storage):
    """Reads an uploaded file into memory and keeps a copy in the upload folder."""
    filename = secure_filename(file_storage.filename) or 'upload'
    data = file_storage.read()
    upload_folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(upload_folder, exist_ok=True)
    stamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    with open(os.path.join(upload_folder, f"{stamp}_{filename}"), 'wb') as f:
        f.write(data)
    return data, filename

def distributor_record_from(data):
    return DistributorRecord(
        id=str(data.get('id') or '').strip(),
        name=str(data.get('name') or '').strip(),
        type=str(data.get('type') or '').strip(),
        zone=str(data.get('zone') or '').strip(),
        state=str(data.get('state') or '').strip()
    )

@bp.app_errorhandler(413)
def file_too_large(e):
    return error_response('File is too large to upload.', 413)

# --- Service and Reference Data ---

@bp.route('/health')
def health():
    return jsonify({'status': 'ok', 'timestamp': datetime.utcnow().isoformat()})

@bp.route('/reference-data')
def reference_data():
    return jsonify({'success': True, **load_reference_data().to_dict()})

@bp.route('/zone-state-mapping', methods=['GET', 'POST'])
def zone_state_mapping():
    """Reads or replaces the zone -> states mapping."""
    if request.method == 'GET':
        return jsonify({'success': True, 'mapping': load_reference_data().zone_state_mapping})

    payload = request.get_json(silent=True) or {}
    mapping = payload.get('data') or payload.get('mapping') or payload
    if not isinstance(mapping, dict) or not mapping or not all(
            isinstance(states, list) and all(isinstance(s, str) for s in states) for states in mapping.values()):
        return error_response('Mapping must be an object of zone -> list of state names')

    try:
        set_json_setting(ZONE_STATE_MAPPING_KEY, mapping, 'States allowed in each zone')
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving zone-state mapping failed: {e}", exc_info=True)
        return error_response('Failed to save zone-state mapping', 500)

    current_app.logger.info(f"Zone-state mapping replaced ({len(mapping)} zones)")
    return jsonify({'success': True, 'mapping': mapping})

# --- Distributors ---

@bp.route('/distributors', methods=['GET'])
def list_distributors():
    query = (request.args.get('q') or '').strip()
    distributors = search_distributors(query) if query else \
        Distributor.query.order_by(Distributor.distributor_id).all()
    return jsonify({'success': True, 'distributors': [d.to_dict() for d in distributors]})

@bp.route('/distributors', methods=['POST'])
def create_distributor():
    form = DistributorForm()
    if not form.validate_on_submit():
        return error_response('Invalid distributor', errors=form.error_messages())

    record = distributor_record_from(form.data)
    errors = validate_distributor_record(record, load_reference_data())
    if errors:
        return error_response('Invalid distributor', errors=errors)
    if find_distributor(record.id):
        return error_response(f"Distributor {record.id} already exists")

    try:
        save_distributors([{**record.to_dict(), 'status': form.status.data}])
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Creating distributor {record.id} failed: {e}", exc_info=True)
        return error_response('Failed to create distributor', 500)

    return jsonify({'success': True, 'distributor': find_distributor(record.id).to_dict()}), 201

@bp.route('/distributors/<identifier>', methods=['GET'])
def get_distributor(identifier):
    distributor = find_distributor(identifier)
    if distributor is None:
        return error_response('Distributor not found', 404)
    return jsonify({'success': True, 'distributor': distributor.to_dict()})

@bp.route('/distributors/<identifier>', methods=['PUT'])
def update_distributor(identifier):
    """Merges the given fields into the stored distributor and revalidates it."""
    distributor = find_distributor(identifier)
    if distributor is None:
        return error_response('Distributor not found', 404)

    form = DistributorUpdateForm()
    if not form.validate_on_submit():
        return error_response('Invalid distributor', errors=form.error_messages())

    merged = distributor.to_dict()
    merged.update({name: value for name, value in form.data.items() if value})
    record = distributor_record_from(merged)
    errors = validate_distributor_record(record, load_reference_data())
    if errors:
        return error_response('Invalid distributor', errors=errors)

    try:
        save_distributors([{**record.to_dict(), 'status': merged.get('status')}])
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Updating distributor {identifier} failed: {e}", exc_info=True)
        return error_response('Failed to update distributor', 500)

    return jsonify({'success': True, 'distributor': distributor.to_dict()})

@bp.route('/distributors/<identifier>', methods=['DELETE'])
def delete_distributor(identifier):
    distributor = find_distributor(identifier)
    if distributor is None:
        return error_response('Distributor not found', 404)
    db.session.delete(distributor)
    db.session.commit()
    current_app.logger.info(f"Distributor {identifier} deleted")
    return jsonify({'success': True})

@bp.route('/distributors/<identifier>/status', methods=['PATCH'])
def change_distributor_status(identifier):
    distributor = find_distributor(identifier)
    if distributor is None:
        return error_response('Distributor not found', 404)

    form = DistributorStatusForm()
    if not form.validate_on_submit():
        return error_response('Invalid status', errors=form.error_messages())

    distributor.status = form.status.data
    db.session.commit()
    return jsonify({'success': True, 'distributor': distributor.to_dict()})

@bp.route('/distributors/bulk', methods=['POST'])
def bulk_save_distributors():
    """Saves an array of distributors; only records without validation errors are stored."""
    payload = request.get_json(silent=True) or {}
    items = payload.get('distributors')
    if not isinstance(items, list) or not items:
        return error_response('Request must contain a non-empty "distributors" array')

    reference = load_reference_data()
    valid, errors = [], []
    for index, item in enumerate(items):
        record = distributor_record_from(item if isinstance(item, dict) else {})
        record.row_number = index + 1
        if validate_distributor_record(record, reference):
            errors.extend(f"Item {record.row_number}: {message}" for message in record.errors)
        else:
            valid.append(record.to_dict())

    try:
        created, updated = save_distributors(valid)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Bulk distributor save failed: {e}", exc_info=True)
        return error_response('Failed to save distributors', 500)

    return jsonify({'success': True, 'created': created, 'updated': updated,
                    'rejected': len(items) - len(valid), 'errors': errors})

@bp.route('/distributors/upload', methods=['POST'])
def upload_distributors():
    """Runs a distributor file through validation and stores the valid rows unless dry_run is set."""
    form = UploadForm()
    if not form.validate_on_submit():
        return error_response('Invalid upload', errors=form.error_messages())

    data, filename = read_upload(form.file.data)
    report = process_distributor_upload(data, filename, load_reference_data())
    if report.rejection:
        return error_response(report.rejection, report=report.to_dict())

    result = {'success': True, 'dryRun': form.dry_run.data, 'report': report.to_dict(), 'created': 0, 'updated': 0}
    if form.dry_run.data or not report.valid_records:
        return jsonify(result)

    try:
        result['created'], result['updated'] = save_distributors([r.to_dict() for r in report.valid_records])
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving uploaded distributors failed: {e}", exc_info=True)
        return error_response('Failed to save distributors', 500)

    current_app.logger.info(f"Distributor upload '{filename}': {result['created']} created, {result['updated']} updated")
    return jsonify(result)

@bp.route('/distributors/template')
def distributor_template():
    return Response(
        '\n'.join(DISTRIBUTOR_TEMPLATE_ROWS) + '\n',
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=distributor_template.csv'}
    )

# --- Category Catalog ---

@bp.route('/category-data', methods=['GET'])
def get_category_data():
    count = CategoryArticle.query.count()
    return jsonify({'success': True, 'recordCount': count, 'categoryData': load_category_mappings()})

@bp.route('/category-data', methods=['POST'])
def upload_category_data():
    form = UploadForm()
    if not form.validate_on_submit():
        return error_response('Invalid upload', errors=form.error_messages())

    data, filename = read_upload(form.file.data)
    report = process_category_upload(data, filename)
    if report.rejection:
        return error_response(report.rejection, report=report.to_dict())
    if form.dry_run.data:
        return jsonify({'success': True, 'dryRun': True, 'report': report.to_dict()})
    if not report.valid_records:
        return error_response('No valid category records found', report=report.to_dict())

    try:
        stored = replace_category_data(report.valid_records, filename)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving category data failed: {e}", exc_info=True)
        return error_response('Failed to save category data', 500)

    return jsonify({'success': True, 'stored': stored, 'report': report.to_dict(),
                    'categoryData': load_category_mappings()})

@bp.route('/category-data', methods=['DELETE'])
def delete_category_data():
    deleted = CategoryArticle.query.delete()
    db.session.commit()
    current_app.logger.info(f"Category catalog deleted ({deleted} rows)")
    return jsonify({'success': True, 'deleted': deleted})

@bp.route('/category-data/raw')
def get_raw_category_data():
    rows = CategoryArticle.query.order_by(CategoryArticle.id).all()
    return jsonify({'success': True, 'records': [r.to_dict() for r in rows]})

# --- Sales Data ---

@bp.route('/sales-data', methods=['GET'])
def get_sales_data():
    records = SalesRecord.query.order_by(SalesRecord.id).all()
    return jsonify({'success': True, 'records': [r.to_dict() for r in records]})

@bp.route('/sales-data', methods=['DELETE'])
def delete_sales_data():
    deleted = SalesRecord.query.delete()
    db.session.commit()
    current_app.logger.info(f"Sales data deleted ({deleted} rows)")
    return jsonify({'success': True, 'deleted': deleted})

@bp.route('/sales-data/upload', methods=['POST'])
def upload_sales_data():
    form = SalesUploadForm()
    if not form.validate_on_submit():
        return error_response('Invalid upload', errors=form.error_messages())

    data, filename = read_upload(form.file.data)
    report = process_sales_upload(data, filename, current_app.config['MAX_SALES_RECORDS'])
    if report.rejection:
        return error_response(report.rejection, report=report.to_dict())
    if not report.records:
        return error_response('No sales records found', report=report.to_dict())

    result = {'success': True, 'dryRun': form.dry_run.data, 'report': report.to_dict(), 'uploadId': None}
    if form.dry_run.data:
        return jsonify(result)

    try:
        result['uploadId'] = store_sales_records(report.records, form.month.data or None, form.year.data, filename)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving sales data failed: {e}", exc_info=True)
        return error_response('Failed to save sales data', 500)

    return jsonify(result)

@bp.route('/uploads')
def list_uploads():
    """Sales uploads grouped into batches; records are included only with ?include_data=1."""
    records = [r.to_dict() for r in SalesRecord.query.order_by(SalesRecord.id).all()]
    batches = group_upload_batches(records)
    if request.args.get('include_data') not in ('1', 'true'):
        for batch in batches:
            batch.pop('data')
    return jsonify({'success': True, 'uploads': batches})

# --- Schemes and Calculations ---

@bp.route('/schemes', methods=['GET'])
def list_schemes():
    schemes = Scheme.query.order_by(Scheme.created_at.desc()).all()
    return jsonify({'success': True, 'schemes': [s.to_dict() for s in schemes]})

@bp.route('/schemes', methods=['POST'])
def create_scheme():
    form = SchemeForm()
    if not form.validate_on_submit():
        return error_response('Invalid scheme', errors=form.error_messages())

    payload = request.get_json(silent=True) or {}
    slabs = payload.get('slabs') or []
    article_commissions = payload.get('articleCommissions')
    if not isinstance(slabs, list) or not all(isinstance(s, dict) for s in slabs):
        return error_response('Slabs must be a list of {min, max, rate} objects')
    if article_commissions is not None and not isinstance(article_commissions, dict):
        return error_response('Article commissions must be an object of article id -> rate')

    criteria = {key: payload.get(key) for key in ('distIds', 'articles', 'distributorData', 'catalogType')
                if payload.get(key) is not None}
    scheme = Scheme(
        scheme_id=f"scheme_{uuid.uuid4().hex[:12]}",
        name=form.name.data,
        scheme_type=normalize_scheme_type(form.type.data),
        slab_type=form.slabType.data or 'quantity',
        commission_type=form.commissionType.data or 'percentage',
        start_date=form.startDate.data,
        end_date=form.endDate.data,
        status=form.status.data or 'active',
        slabs_json=json.dumps(slabs),
        article_commissions_json=json.dumps(article_commissions) if article_commissions else None,
        criteria_json=json.dumps(criteria)
    )

    try:
        db.session.add(scheme)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Creating scheme failed: {e}", exc_info=True)
        return error_response('Failed to create scheme', 500)

    current_app.logger.info(f"Scheme {scheme.scheme_id} '{scheme.name}' created")
    return jsonify({'success': True, 'scheme': scheme.to_dict()}), 201

@bp.route('/schemes/article-commissions/upload', methods=['POST'])
def upload_article_commissions():
    """Parses an Article ID / Commission file into the articleCommissions of an article scheme."""
    form = UploadForm()
    if not form.validate_on_submit():
        return error_response('Invalid upload', errors=form.error_messages())

    data, filename = read_upload(form.file.data)
    report = process_article_commission_upload(data, filename)
    if report.rejection:
        return error_response(report.rejection, report=report.to_dict())

    commissions = article_commission_mapping(report.records)
    return jsonify({
        'success': True,
        'fileName': filename,
        'articleCommissions': commissions,
        'articles': {'type': 'other', 'specificIds': list(commissions)},
        'report': report.to_dict()
    })

@bp.route('/schemes/article-commissions/template')
def article_commission_template():
    return Response(
        '\n'.join(ARTICLE_COMMISSION_TEMPLATE_ROWS) + '\n',
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=article-scheme-template.csv'}
    )

@bp.route('/calculate', methods=['POST'])
def calculate():
    """Runs a stored scheme over all stored sales and saves the run."""
    form = CalculateForm()
    if not form.validate_on_submit():
        return error_response('Invalid calculation request', errors=form.error_messages())

    scheme = Scheme.query.filter_by(scheme_id=form.schemeId.data).first()
    if scheme is None:
        return error_response('Scheme not found', 404)

    sales = [r.to_dict() for r in SalesRecord.query.order_by(SalesRecord.id).all()]
    if not sales:
        return error_response('No sales data available. Please upload sales data first.')

    try:
        distributors = [d.to_dict() for d in Distributor.query.all()]
        mappings = load_category_mappings()
        details, article_summary = calculate_scheme(
            scheme.to_dict(), sales, distributors, mappings['articleMappings']
        )

        run = CalculationRun(
            calculation_id=f"calc_{uuid.uuid4().hex[:12]}",
            scheme_pk=scheme.id,
            scheme_name=scheme.name,
            calculated_at=datetime.utcnow(),
            total_commission=sum(d['commission'] for d in details),
            total_records=len(details),
            detailed_results_json=json.dumps(details)
        )
        db.session.add(run)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Calculation for scheme {scheme.scheme_id} failed: {e}", exc_info=True)
        return error_response(f'An unexpected error occurred during calculation: {e}', 500)

    return jsonify({
        'success': True,
        'calculation': calculation_overview(run),
        'distributorArticleSummary': article_summary
    })

@bp.route('/calculations')
def list_calculations():
    runs = CalculationRun.query.order_by(CalculationRun.calculated_at.desc()).all()
    return jsonify({'success': True, 'calculations': [calculation_overview(run) for run in runs]})

@bp.route('/calculations/latest')
def latest_calculation():
    run = CalculationRun.query.order_by(CalculationRun.calculated_at.desc(), CalculationRun.id.desc()).first()
    if run is None:
        return error_response('No calculations found', 404)
    return jsonify({'success': True, 'calculation': calculation_overview(run), 'details': run.get_details()})

@bp.route('/calculations/<calculation_id>/summary')
def calculation_summary(calculation_id):
    run = CalculationRun.query.filter_by(calculation_id=calculation_id).first()
    if run is None:
        return error_response('Calculation not found', 404)
    return jsonify({'success': True, 'calculation': calculation_overview(run), **calculation_summaries(run)})
