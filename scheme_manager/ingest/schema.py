# ==============================================================================
# scheme_manager/ingest/schema.py
# ------------------------------------------------------------------------------
# Defines the expected column layout of each uploadable file.
# Each table maps a logical field to the header spellings it accepts, in the
# order they are tried. The first spelling doubles as the display name when
# the column is missing.
# ==============================================================================

DISTRIBUTOR_HEADERS = [
    ('id', ['distributor id', 'distributorid', 'distributor_id', 'id']),
    ('name', ['distributor name', 'distributorname', 'distributor_name', 'name']),
    ('type', ['type', 'distributor type', 'distributortype', 'distributor_type']),
    ('zone', ['zone']),
    ('state', ['state'])
]

DISTRIBUTOR_FIELD_LABELS = {
    'id': 'Distributor ID',
    'name': 'Distributor name',
    'type': 'Type',
    'zone': 'Zone',
    'state': 'State'
}

CATEGORY_HEADERS = [
    ('family_code', ['family code', 'familycode', 'family_code']),
    ('family_name', ['family name', 'familyname', 'family_name']),
    ('class_code', ['class code', 'classcode', 'class_code']),
    ('class_name', ['class name', 'classname', 'class_name']),
    ('brand_code', ['brand code', 'brandcode', 'brand_code']),
    ('brand_name', ['brand name', 'brandname', 'brand_name']),
    ('article_code', ['article code', 'articlecode', 'article_code']),
    ('article_description', ['article description', 'articledescription', 'article_description'])
]

CATEGORY_FIELD_LABELS = {
    'family_code': 'Family code',
    'family_name': 'Family name',
    'class_code': 'Class code',
    'class_name': 'Class name',
    'brand_code': 'Brand code',
    'brand_name': 'Brand name',
    'article_code': 'Article code',
    'article_description': 'Article description'
}

SALES_HEADERS = [
    ('monthOfBillingDate', ['month of billing date', 'monthofbillingdate', 'billing month', 'month']),
    ('dayOfBillingDate', ['day of billing date', 'dayofbillingdate', 'billing day', 'day']),
    ('distributorId', ['distributor id', 'distributorid', 'distributor_id', 'distributor code']),
    ('articleId', ['article id', 'articleid', 'article_id', 'article code']),
    ('billingQuantity', ['billing quantity', 'billingquantity', 'billing_quantity', 'quantity']),
    ('netSales', ['net sales', 'netsales', 'net_sales', 'net value']),
    ('billingDocument', ['billing document', 'billingdocument', 'billing_document', 'invoice number'])
]

SALES_NUMERIC_FIELDS = {
    'billingQuantity': 'Billing quantity',
    'netSales': 'Net sales'
}

ARTICLE_COMMISSION_HEADERS = [
    ('article_id', ['article id', 'articleid', 'article_id', 'article code', 'article']),
    ('commission', ['commission', 'commission rate', 'rate'])
]

# Templates offered for download next to the upload endpoints
DISTRIBUTOR_TEMPLATE_ROWS = [
    'Distributor ID,Distributor Name,Type,Zone,State',
    'DIST001,ABC Electronics Pvt Ltd,P1,North1,Delhi',
    'DIST002,XYZ Distributors,P2,West,Maharashtra',
    'DIST003,Regional Sales Corp,P3,South,Karnataka',
    'DIST004,Metro Retail Chain,P4,East,West Bengal',
    'DIST005,Direct Dealer Hub,P5,North2,Punjab'
]

ARTICLE_COMMISSION_TEMPLATE_ROWS = [
    'Article ID,Commission',
    'ART001,10.5',
    'ART002,25',
    'ART003,15.75',
    'ART004,50',
    'ART005,8.25'
]

# Error messages use the record's position plus this offset: one for the
# header row, one for 1-based numbering.
ROW_NUMBER_OFFSET = 2
