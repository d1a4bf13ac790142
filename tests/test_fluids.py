"""Tests for the CoolProp property adapter and refrigerant catalogue."""

import pytest

from rcc_pro.core.errors import OutOfRange, PropertyLookupFailed, UnsupportedFluid
from rcc_pro.core.fluids import (
    Fluid,
    PropertyCache,
    PropertyProvider,
    coolprop_name,
    get_fluid_info,
    list_fluids,
    lookup,
)


class TestFluid:
    def test_saturation_pressure_r134a(self):
        props = Fluid("R134a").state("T", 263.15, "Q", 1.0)
        # ~2.006 bar at -10 °C
        assert props.P == pytest.approx(2.006e5, rel=0.01)
        assert props.quality == pytest.approx(1.0)
        assert props.is_two_phase

    def test_argument_order_irrelevant(self):
        f = Fluid("R134a")
        a = f.state("P", 5e5, "T", 300.0)
        b = f.state("T", 300.0, "P", 5e5)
        assert a.h == pytest.approx(b.h)
        assert a.s == pytest.approx(b.s)

    def test_superheated_not_two_phase(self):
        props = Fluid("R134a").state("P", 2e5, "T", 300.0)
        assert props.quality == -1.0
        assert not props.is_two_phase

    def test_unsupported_fluid(self):
        with pytest.raises(UnsupportedFluid) as exc_info:
            Fluid("NotARefrigerant")
        assert exc_info.value.fluid == "NotARefrigerant"

    def test_unsupported_input_pair(self):
        with pytest.raises(OutOfRange):
            Fluid("R134a").state("T", 300.0, "H", 4e5)

    def test_out_of_range_state(self):
        with pytest.raises(OutOfRange) as exc_info:
            Fluid("R134a").state("P", 1e5, "T", 1.0)
        assert exc_info.value.requested_state == {"P": 1e5, "T": 1.0}
        assert isinstance(exc_info.value, PropertyLookupFailed)

    def test_critical_point_cached(self):
        f = Fluid("R134a")
        assert f.T_critical == pytest.approx(374.21, abs=0.1)
        assert f.molar_mass == pytest.approx(0.10203, rel=1e-3)


class TestPropertyProvider:
    def test_cache_hits(self):
        provider = PropertyProvider()
        provider.lookup("R134a", "P", 2e5, "T", 270.0)
        provider.lookup("R134a", "T", 270.0, "P", 2e5)
        assert provider.cache.hits == 1
        assert provider.cache.misses == 1
        assert len(provider.cache) == 1

    def test_cache_is_per_provider(self):
        p1 = PropertyProvider()
        p2 = PropertyProvider()
        p1.lookup("R134a", "P", 2e5, "T", 270.0)
        assert len(p2.cache) == 0

    def test_injected_cache(self):
        cache = PropertyCache()
        provider = PropertyProvider(cache=cache)
        provider.lookup("R134a", "P", 2e5, "T", 270.0)
        assert len(cache) == 1

    def test_cache_disabled(self):
        provider = PropertyProvider(use_cache=False)
        assert provider.cache is None
        props = provider.lookup("R134a", "P", 2e5, "T", 270.0)
        assert props.T == pytest.approx(270.0)

    def test_catalogue_name_resolution(self):
        provider = PropertyProvider()
        assert provider.fluid("R717").name == "Ammonia"

    def test_saturation_helpers(self):
        provider = PropertyProvider()
        P = provider.saturation_pressure("R717", 273.15)
        assert P == pytest.approx(4.29e5, rel=0.01)
        assert provider.saturation_temperature("R717", P) == pytest.approx(273.15, abs=1e-3)

    def test_gas_constant(self):
        provider = PropertyProvider()
        assert provider.gas_constant("R717") == pytest.approx(488.2, rel=1e-3)

    def test_module_lookup(self):
        props = lookup("R134a", "T", 263.15, "Q", 0.0)
        assert props.quality == pytest.approx(0.0)


class TestCatalogue:
    def test_list_fluids(self):
        fluids = list_fluids()
        assert "R134a" in fluids
        assert "R717" in fluids

    def test_info_case_insensitive(self):
        info = get_fluid_info("r717")
        assert info["coolprop_name"] == "Ammonia"
        assert info["safety_class"] == "B2L"

    def test_unknown_fluid_info(self):
        with pytest.raises(KeyError):
            get_fluid_info("R999")

    def test_coolprop_name(self):
        assert coolprop_name("R744") == "CarbonDioxide"
        assert coolprop_name("Water") == "Water"
