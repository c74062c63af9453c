# ==============================================================================
# scheme_manager/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from scheme_manager import db
import json


def _isoformat(value):
    return value.isoformat() if value else None


class Distributor(db.Model):
    """
    A distributor in the network. `distributor_id` is the business id from
    the uploaded files; `code` is generated from type, name and id.
    """
    __tablename__ = 'distributor'
    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(256), nullable=False)
    code = db.Column(db.String(128), index=True)
    type = db.Column(db.String(8), nullable=False)
    zone = db.Column(db.String(32), nullable=False)
    state = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), default='active', nullable=False)
    onboarded_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Distributor {self.distributor_id}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.distributor_id,
            'name': self.name,
            'code': self.code,
            'type': self.type,
            'zone': self.zone,
            'state': self.state,
            'status': self.status,
            'onboardedAt': _isoformat(self.onboarded_at),
            'updatedAt': _isoformat(self.updated_at)
        }


class SalesRecord(db.Model):
    """
    One billing row from an uploaded sales file, tagged with the metadata
    of the upload it came from.
    """
    __tablename__ = 'sales_record'
    id = db.Column(db.Integer, primary_key=True)
    month_of_billing_date = db.Column(db.String(32))
    day_of_billing_date = db.Column(db.String(32))
    distributor_id = db.Column(db.String(64), index=True)
    article_id = db.Column(db.String(64), index=True)
    billing_quantity = db.Column(db.Float, default=0)
    net_sales = db.Column(db.Float, default=0)
    billing_document = db.Column(db.String(64))

    upload_id = db.Column(db.String(64), index=True)
    upload_month = db.Column(db.String(16))
    upload_year = db.Column(db.Integer)
    file_name = db.Column(db.String(256))
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<SalesRecord {self.id}: {self.distributor_id}/{self.article_id}>'

    def to_dict(self):
        return {
            'monthOfBillingDate': self.month_of_billing_date,
            'dayOfBillingDate': self.day_of_billing_date,
            'distributorId': self.distributor_id,
            'articleId': self.article_id,
            'billingQuantity': self.billing_quantity,
            'netSales': self.net_sales,
            'billingDocument': self.billing_document,
            'uploadId': self.upload_id,
            'uploadMonth': self.upload_month,
            'uploadYear': self.upload_year,
            'fileName': self.file_name,
            'uploadedAt': _isoformat(self.uploaded_at)
        }


class CategoryArticle(db.Model):
    """
    One row of the article catalog (family / class / brand hierarchy).
    The whole table is replaced on each category upload.
    """
    __tablename__ = 'category_article'
    id = db.Column(db.Integer, primary_key=True)
    family_code = db.Column(db.String(64), nullable=False)
    family_name = db.Column(db.String(128), nullable=False, index=True)
    class_code = db.Column(db.String(64), nullable=False)
    class_name = db.Column(db.String(128), nullable=False, index=True)
    brand_code = db.Column(db.String(64), nullable=False)
    brand_name = db.Column(db.String(128), nullable=False, index=True)
    article_code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    article_description = db.Column(db.String(512))
    file_name = db.Column(db.String(256))
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<CategoryArticle {self.article_code}>'

    def to_dict(self):
        return {
            'familyCode': self.family_code,
            'familyName': self.family_name,
            'classCode': self.class_code,
            'className': self.class_name,
            'brandCode': self.brand_code,
            'brandName': self.brand_name,
            'articleCode': self.article_code,
            'articleDescription': self.article_description
        }


class Scheme(db.Model):
    """
    A commission program. Slabs, per-article commissions and the
    eligibility criteria are stored as JSON strings.
    """
    __tablename__ = 'scheme'
    id = db.Column(db.Integer, primary_key=True)
    scheme_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    scheme_type = db.Column(db.String(32), nullable=False)
    slab_type = db.Column(db.String(16), default='quantity')
    commission_type = db.Column(db.String(32), default='percentage')
    start_date = db.Column(db.String(32))
    end_date = db.Column(db.String(32))
    status = db.Column(db.String(16), default='active')
    slabs_json = db.Column(db.Text, default='[]')
    article_commissions_json = db.Column(db.Text, nullable=True)
    criteria_json = db.Column(db.Text, default='{}')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    calculation_runs = db.relationship('CalculationRun', backref='scheme', lazy='dynamic', cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Scheme {self.scheme_id}: {self.name}>'

    def to_dict(self):
        """Returns the scheme in the shape the calculation engine reads."""
        criteria = json.loads(self.criteria_json or '{}')
        return {
            'id': self.scheme_id,
            'name': self.name,
            'type': self.scheme_type,
            'slabType': self.slab_type,
            'commissionType': self.commission_type,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'status': self.status,
            'slabs': json.loads(self.slabs_json or '[]'),
            'articleCommissions': json.loads(self.article_commissions_json) if self.article_commissions_json else None,
            'distIds': criteria.get('distIds'),
            'articles': criteria.get('articles'),
            'distributorData': criteria.get('distributorData'),
            'catalogType': criteria.get('catalogType'),
            'createdAt': _isoformat(self.created_at)
        }


class CalculationRun(db.Model):
    """
    Stores one commission calculation. The per-sale details are kept as a
    JSON string; summaries are rebuilt from them on request.
    """
    __tablename__ = 'calculation_run'
    id = db.Column(db.Integer, primary_key=True)
    calculation_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    scheme_pk = db.Column(db.Integer, db.ForeignKey('scheme.id'), nullable=False)
    scheme_name = db.Column(db.String(128))
    calculated_at = db.Column(db.DateTime, index=True, default=datetime.utcnow)
    total_commission = db.Column(db.Float, default=0)
    total_records = db.Column(db.Integer, default=0)

    # Column to store the full, detailed results as a JSON string
    detailed_results_json = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<CalculationRun {self.calculation_id}: {self.scheme_name}>'

    def get_details(self):
        return json.loads(self.detailed_results_json) if self.detailed_results_json else []


class AppSetting(db.Model):
    """
    Stores key-value pairs for reference data such as the zone-state
    mapping and the distributor type codes.
    """
    __tablename__ = 'app_setting'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(512))
    value_type = db.Column(db.String(32), default='string') # e.g., 'float', 'int', 'string', 'json'

    def __repr__(self):
        return f'<AppSetting {self.key}: {self.value}>'

    def get_value(self):
        """Casts the string value to its correct Python type."""
        if self.value_type == 'float':
            return float(self.value)
        if self.value_type == 'int':
            return int(self.value)
        if self.value_type == 'json':
            return json.loads(self.value)
        return self.value
