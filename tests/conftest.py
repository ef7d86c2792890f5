from __future__ import annotations

from typing import Dict, List

import pytest

from evcore.data import CAFV_ELIGIBLE, Dataset

BEV = "Battery Electric Vehicle (BEV)"
PHEV = "Plug-in Hybrid Electric Vehicle (PHEV)"
NOT_ELIGIBLE = "Not eligible due to low battery range"
UNKNOWN = "Eligibility unknown as battery range has not been researched"

SAMPLE_CSV = "\n".join(
    [
        "City,Make,Model,Model Year,Electric Range,Base MSRP,Electric Vehicle Type,Clean Alternative Fuel Vehicle (CAFV) Eligibility",
        f"Seattle,TESLA,MODEL 3,2020,322,0,{BEV},{CAFV_ELIGIBLE}",
        f"Seattle,NISSAN,LEAF,2014,84,0,{BEV},{CAFV_ELIGIBLE}",
        f"Seattle,TESLA,MODEL S,2018,249,0,{BEV},{CAFV_ELIGIBLE}",
        f"Bellevue,BMW,330E,2016,14,44100,{PHEV},{NOT_ELIGIBLE}",
        f"Bellevue,TESLA,MODEL Y,2021,0,0,{BEV},{UNKNOWN}",
        "",
        f"Tacoma,CHEVROLET,VOLT,2013,38,0,{PHEV},{CAFV_ELIGIBLE}",
        f"Redmond,PORSCHE,CAYENNE,2016,14,77200,{PHEV},{NOT_ELIGIBLE}",
    ]
)


def vehicle(**fields: object) -> Dict[str, object]:
    names = {
        "city": "City",
        "make": "Make",
        "model": "Model",
        "year": "Model Year",
        "range": "Electric Range",
        "msrp": "Base MSRP",
        "ev_type": "Electric Vehicle Type",
        "cafv": "Clean Alternative Fuel Vehicle (CAFV) Eligibility",
    }
    return {names[k]: v for k, v in fields.items()}


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def sample_records() -> List[Dict[str, object]]:
    return [
        vehicle(city="Seattle", make="TESLA", model="MODEL 3", year=2020, range=300, msrp=0, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Seattle", make="TESLA", model="MODEL Y", year=2021, range=250, msrp=0, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Seattle", make="NISSAN", model="LEAF", year=2019, range=150, msrp=30000, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Seattle", make="KIA", model="NIRO", year=2020, range=240, msrp=40000, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Bellevue", make="TESLA", model="MODEL 3", year=2020, range=320, msrp=0, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Bellevue", make="BMW", model="I3", year=2019, range=150, msrp=45000, ev_type=BEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Bellevue", make="BMW", model="330E", year=2021, range=14, msrp=44000, ev_type=PHEV, cafv=NOT_ELIGIBLE),
        vehicle(city="Tacoma", make="CHEVROLET", model="VOLT", year=2019, range=38, msrp=0, ev_type=PHEV, cafv=CAFV_ELIGIBLE),
        vehicle(city="Tacoma", make="CHEVROLET", model="BOLT", year=2021, range=None, msrp=0, ev_type=BEV, cafv=UNKNOWN),
        vehicle(city="Redmond", make="TOYOTA", model="PRIUS PLUG-IN", year=2020, range=6, msrp=None, ev_type=PHEV, cafv=NOT_ELIGIBLE),
    ]


@pytest.fixture
def sample_dataset(sample_records) -> Dataset:
    return Dataset.from_records(sample_records, source="fixture")
