# ==============================================================================
# scheme_manager/ingest/reference.py
# ------------------------------------------------------------------------------
# Reference tables used while validating distributor uploads: the zones, the
# states allowed in each zone, and the distributor type codes.
# ==============================================================================

import logging
from dataclasses import dataclass, field

DEFAULT_ZONES = ['East', 'West', 'North1', 'North2', 'South']

DEFAULT_ZONE_STATE_MAPPING = {
    'North1': ['Delhi', 'UP East', 'UP West', 'Uttarakhand'],
    'North2': ['Punjab', 'Haryana', 'Himachal Pradesh', 'Chandigarh', 'Jammu & Kashmir', 'Rajasthan'],
    'South': ['Karnataka', 'Tamil Nadu', 'Andhra Pradesh', 'Telangana', 'Kerala', 'Puducherry'],
    'East': ['West Bengal', 'Odisha', 'Jharkhand', 'Bihar', 'Sikkim', 'Assam'],
    'West': ['Maharashtra', 'Gujarat', 'Goa', 'Madhya Pradesh', 'Chhattisgarh']
}

DEFAULT_DISTRIBUTOR_TYPES = [
    {'code': 'P1', 'name': 'National Distributor'},
    {'code': 'P2', 'name': 'Regional Distributor'},
    {'code': 'P3', 'name': 'Large Format Retailer'},
    {'code': 'P4', 'name': 'Regional Retailer'},
    {'code': 'P5', 'name': 'Direct Dealer'},
    {'code': 'P6', 'name': 'PBG_Liquidation'},
    {'code': 'P7', 'name': 'Advance Dealer-PBG'},
    {'code': 'P8', 'name': 'Advance Dist-PBG'},
    {'code': 'P9', 'name': 'Advance FOMT-PBG'},
    {'code': 'PD', 'name': 'PBG DD Prime Partner'},
    {'code': 'PC', 'name': 'PBG CDG Group'}
]

# AppSetting keys holding each table
ZONES_KEY = 'VALID_ZONES'
ZONE_STATE_MAPPING_KEY = 'ZONE_STATE_MAPPING'
DISTRIBUTOR_TYPES_KEY = 'DISTRIBUTOR_TYPES'


@dataclass(frozen=True)
class ReferenceData:
    """Read-only lookup tables for one validation pass."""

    zones: list = field(default_factory=lambda: list(DEFAULT_ZONES))
    zone_state_mapping: dict = field(default_factory=lambda: {z: list(s) for z, s in DEFAULT_ZONE_STATE_MAPPING.items()})
    distributor_types: list = field(default_factory=lambda: [dict(t) for t in DEFAULT_DISTRIBUTOR_TYPES])

    @property
    def type_codes(self):
        return [t['code'] for t in self.distributor_types]

    def states_for_zone(self, zone):
        return self.zone_state_mapping.get(zone) or []

    def to_dict(self):
        return {
            'zones': list(self.zones),
            'zoneStateMapping': {zone: list(states) for zone, states in self.zone_state_mapping.items()},
            'distributorTypes': [dict(t) for t in self.distributor_types]
        }


def load_reference_data():
    """
    Builds ReferenceData from the AppSetting table. Keys that are not
    stored fall back to the built-in defaults. Requires an app context.
    """
    from scheme_manager.models import AppSetting

    settings = AppSetting.query.filter(
        AppSetting.key.in_([ZONES_KEY, ZONE_STATE_MAPPING_KEY, DISTRIBUTOR_TYPES_KEY])
    ).all()
    settings_dict = {s.key: s.get_value() for s in settings}

    missing = {ZONES_KEY, ZONE_STATE_MAPPING_KEY, DISTRIBUTOR_TYPES_KEY} - set(settings_dict)
    if missing:
        logging.info(f"Reference data not stored for {sorted(missing)}; using defaults.")

    defaults = ReferenceData()
    return ReferenceData(
        zones=settings_dict.get(ZONES_KEY, defaults.zones),
        zone_state_mapping=settings_dict.get(ZONE_STATE_MAPPING_KEY, defaults.zone_state_mapping),
        distributor_types=settings_dict.get(DISTRIBUTOR_TYPES_KEY, defaults.distributor_types)
    )
