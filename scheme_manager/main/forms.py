# ==============================================================================
# scheme_manager/main/forms.py
# ------------------------------------------------------------------------------
# Defines the API input forms using Flask-WTF. JSON bodies are wrapped by
# Flask-WTF as form data, so flat payloads validate like posted forms.
# Nested payloads (slabs, criteria, mappings) are read from the JSON body.
# ==============================================================================

import os

from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import BooleanField, IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, NumberRange, Optional, ValidationError

from scheme_manager.calculator.engine import COMMISSION_TYPES, SCHEME_TYPE_ALIASES, SLAB_TYPES

DISTRIBUTOR_STATUSES = ['active', 'inactive', 'pending']
SCHEME_TYPES = sorted(set(SCHEME_TYPE_ALIASES) | set(SCHEME_TYPE_ALIASES.values()))


def _strip(value):
    return str(value).strip() if value is not None else value


class ApiForm(FlaskForm):
    """Base for JSON and multipart API forms; the API is not cookie based."""
    class Meta:
        csrf = False

    def error_messages(self):
        return [f"{self[name].label.text}: {message}" for name, messages in self.errors.items() for message in messages]


class DistributorForm(ApiForm):
    """Form for creating a distributor. Type, zone and state are checked against reference data separately."""
    id = StringField('Distributor ID', validators=[DataRequired(message="Distributor ID is required")], filters=[_strip])
    name = StringField('Distributor name', validators=[DataRequired(message="Distributor name is required")], filters=[_strip])
    type = StringField('Type', validators=[DataRequired(message="Type is required")], filters=[_strip])
    zone = StringField('Zone', validators=[DataRequired(message="Zone is required")], filters=[_strip])
    state = StringField('State', validators=[DataRequired(message="State is required")], filters=[_strip])
    status = StringField('Status', validators=[Optional(), AnyOf(DISTRIBUTOR_STATUSES)], filters=[_strip])


class DistributorUpdateForm(ApiForm):
    """Form for a partial update. Only the fields present are changed."""
    name = StringField('Distributor name', validators=[Optional()], filters=[_strip])
    type = StringField('Type', validators=[Optional()], filters=[_strip])
    zone = StringField('Zone', validators=[Optional()], filters=[_strip])
    state = StringField('State', validators=[Optional()], filters=[_strip])
    status = StringField('Status', validators=[Optional(), AnyOf(DISTRIBUTOR_STATUSES)], filters=[_strip])


class DistributorStatusForm(ApiForm):
    status = StringField('Status', validators=[DataRequired(), AnyOf(DISTRIBUTOR_STATUSES)], filters=[_strip])


class UploadForm(ApiForm):
    """Multipart upload of a distributor or category file."""
    file = FileField('File', validators=[FileRequired(message="No file selected")])
    dry_run = BooleanField('Dry run', default=False)

    def validate_file(self, field):
        """Checks the extension against the app's ALLOWED_EXTENSIONS."""
        extension = os.path.splitext(field.data.filename or '')[1].lower()
        if extension not in current_app.config['ALLOWED_EXTENSIONS']:
            raise ValidationError("Please upload a CSV or Excel (.xlsx) file")


class SalesUploadForm(UploadForm):
    """Multipart upload of a sales file with the reporting month and year."""
    month = StringField('Month', validators=[Optional()], filters=[_strip])
    year = IntegerField('Year', validators=[Optional(), NumberRange(min=2000, max=2100)])


class SchemeForm(ApiForm):
    """Flat scheme attributes; slabs, article commissions and criteria come from the JSON body."""
    name = StringField('Scheme name', validators=[DataRequired(message="Scheme name is required")], filters=[_strip])
    type = StringField('Scheme type', validators=[DataRequired(message="Scheme type is required"), AnyOf(SCHEME_TYPES)], filters=[_strip])
    slabType = StringField('Slab type', validators=[Optional(), AnyOf(list(SLAB_TYPES))], filters=[_strip])
    commissionType = StringField('Commission type', validators=[Optional(), AnyOf(list(COMMISSION_TYPES))], filters=[_strip])
    startDate = StringField('Start date', validators=[Optional()], filters=[_strip])
    endDate = StringField('End date', validators=[Optional()], filters=[_strip])
    status = StringField('Status', validators=[Optional()], filters=[_strip])


class CalculateForm(ApiForm):
    schemeId = StringField('Scheme ID', validators=[DataRequired(message="Scheme ID is required")], filters=[_strip])
