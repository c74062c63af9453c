import json
from scheme_manager import db
from scheme_manager.models import AppSetting
from scheme_manager.ingest.reference import (DEFAULT_DISTRIBUTOR_TYPES, DEFAULT_ZONE_STATE_MAPPING, DEFAULT_ZONES,
                                             DISTRIBUTOR_TYPES_KEY, ZONE_STATE_MAPPING_KEY, ZONES_KEY)

DEFAULT_SETTINGS = {
    # key: [value, description, value_type]
    ZONES_KEY: [json.dumps(DEFAULT_ZONES), 'Zones a distributor can belong to (JSON list)', 'json'],
    ZONE_STATE_MAPPING_KEY: [json.dumps(DEFAULT_ZONE_STATE_MAPPING), 'States allowed in each zone (JSON object)', 'json'],
    DISTRIBUTOR_TYPES_KEY: [json.dumps(DEFAULT_DISTRIBUTOR_TYPES), 'Distributor type codes and names (JSON list)', 'json']
}

def seed_data():
    """Populates the database with the default reference data."""
    for key, data in DEFAULT_SETTINGS.items():
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting: # Only add if it doesn't exist
            setting = AppSetting(key=key, value=data[0], description=data[1], value_type=data[2])
            db.session.add(setting)
            print(f'Seeding setting: {key}')

    db.session.commit()
    print('Seeding complete.')
