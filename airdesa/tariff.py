"""Progressive water tariff.

Three usage bands priced per m³ plus a flat administration fee that is
charged every period, even when nothing was used.
"""

from typing import Dict, List

BAND1_LIMIT = 5
BAND2_LIMIT = 10

RATE_BAND1 = 1500
RATE_BAND2 = 2000
RATE_BAND3 = 2500
ADMIN_FEE = 2000

TARIFF_CLASS_LABELS = {
    "R1": ("Social", "Places of worship, orphanages"),
    "R2": ("Household", "Homes, boarding houses"),
    "N1": ("Commercial", "Shops, stalls, small businesses"),
    "S1": ("Special social", "Village public facilities"),
}


BAND_RATES = {"band1": RATE_BAND1, "band2": RATE_BAND2, "band3": RATE_BAND3}


def band_volumes(usage: int) -> Dict[str, int]:
    """Split ``usage`` m³ over the three bands."""
    usage = max(int(usage), 0)
    return {
        "band1": min(usage, BAND1_LIMIT),
        "band2": min(max(usage - BAND1_LIMIT, 0), BAND2_LIMIT - BAND1_LIMIT),
        "band3": max(usage - BAND2_LIMIT, 0),
    }


def band_charges(usage: int) -> Dict[str, int]:
    return {band: qty * BAND_RATES[band] for band, qty in band_volumes(usage).items()}


def calculate_charge(usage: int) -> int:
    """Return the charge for ``usage`` m³ including the admin fee.

    Negative usage is treated as 0; the admin fee still applies.
    """
    return sum(band_charges(usage).values()) + ADMIN_FEE


def tariff_schedule() -> List[dict]:
    """Published tariff per class. All classes currently share the same bands."""
    bands = [
        {"range": f"0 - {BAND1_LIMIT} m3", "rate": RATE_BAND1},
        {"range": f"> {BAND1_LIMIT} - {BAND2_LIMIT} m3", "rate": RATE_BAND2},
        {"range": f"> {BAND2_LIMIT} m3", "rate": RATE_BAND3},
    ]
    return [
        {
            "tariff_class": code,
            "name": name,
            "description": description,
            "bands": bands,
            "admin_fee": ADMIN_FEE,
        }
        for code, (name, description) in TARIFF_CLASS_LABELS.items()
    ]
