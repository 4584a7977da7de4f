from airdesa.tariff import (
    ADMIN_FEE,
    RATE_BAND1,
    RATE_BAND2,
    RATE_BAND3,
    band_charges,
    calculate_charge,
    tariff_schedule,
)


def test_zero_usage_is_admin_fee_only():
    assert calculate_charge(0) == ADMIN_FEE


def test_negative_usage_is_clamped():
    assert calculate_charge(-7) == ADMIN_FEE


def test_band_boundaries():
    assert calculate_charge(5) == 5 * RATE_BAND1 + ADMIN_FEE
    assert calculate_charge(10) == 5 * RATE_BAND1 + 5 * RATE_BAND2 + ADMIN_FEE
    assert calculate_charge(11) == 5 * RATE_BAND1 + 5 * RATE_BAND2 + RATE_BAND3 + ADMIN_FEE


def test_known_amounts():
    assert calculate_charge(5) == 9500
    assert calculate_charge(10) == 19500
    assert calculate_charge(15) == 32000


def test_charge_is_sum_of_bands_plus_fee():
    for usage in range(0, 60):
        bands = band_charges(usage)
        assert calculate_charge(usage) == bands["band1"] + bands["band2"] + bands["band3"] + ADMIN_FEE
        assert calculate_charge(usage) == calculate_charge(usage)


def test_schedule_lists_every_class():
    schedule = tariff_schedule()
    assert [row["tariff_class"] for row in schedule] == ["R1", "R2", "N1", "S1"]
    assert all(row["admin_fee"] == ADMIN_FEE for row in schedule)
    assert [b["rate"] for b in schedule[0]["bands"]] == [RATE_BAND1, RATE_BAND2, RATE_BAND3]
