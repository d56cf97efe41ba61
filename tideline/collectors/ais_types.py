"""Tideline — AIS ship type codes → human labels."""

from typing import Optional

AIS_SHIP_TYPES = {
    0: "Not Available",
    20: "Wing In Ground",
    21: "WIG Hazardous A",
    22: "WIG Hazardous B",
    23: "WIG Hazardous C",
    24: "WIG Hazardous D",
    29: "WIG No Info",
    30: "Fishing",
    31: "Towing",
    32: "Towing Large",
    33: "Dredging",
    34: "Diving Ops",
    35: "Military Operations",
    36: "Sailing",
    37: "Pleasure Craft",
    40: "High Speed Craft",
    41: "HSC Hazardous A",
    42: "HSC Hazardous B",
    43: "HSC Hazardous C",
    44: "HSC Hazardous D",
    49: "HSC No Info",
    50: "Pilot Vessel",
    51: "Search and Rescue",
    52: "Tug",
    53: "Port Tender",
    54: "Anti-Pollution",
    55: "Law Enforcement",
    56: "Spare Local 1",
    57: "Spare Local 2",
    58: "Medical Transport",
    59: "Noncombatant",
    60: "Passenger",
    61: "Passenger Hazardous A",
    62: "Passenger Hazardous B",
    63: "Passenger Hazardous C",
    64: "Passenger Hazardous D",
    69: "Passenger No Info",
    70: "Cargo",
    71: "Cargo Hazardous A",
    72: "Cargo Hazardous B",
    73: "Cargo Hazardous C",
    74: "Cargo Hazardous D",
    79: "Cargo No Info",
    80: "Tanker",
    81: "Tanker Hazardous A",
    82: "Tanker Hazardous B",
    83: "Tanker Hazardous C",
    84: "Tanker Hazardous D",
    89: "Tanker No Info",
    90: "Other",
    91: "Other Hazardous A",
    92: "Other Hazardous B",
    93: "Other Hazardous C",
    94: "Other Hazardous D",
    99: "Other No Info",
}


def ship_type_name(type_code: Optional[int]) -> str:
    if not type_code:
        return "Unknown"
    return AIS_SHIP_TYPES.get(type_code, f"Type {type_code}")
