"""Records written by ``init_ledger``."""

from typing import List

from .models import CarAsset, CarMalfunction, PersonAsset


def initial_persons() -> List[PersonAsset]:
    return [
        PersonAsset("person1", "Petar", "Trifunovic", "petar@pdasp.rs", 332.54),
        PersonAsset("person2", "Marko", "Markovic", "marko@pdasp.rs", 567.4),
        PersonAsset("person3", "Jovana", "Jovanovic", "jovana@pdasp.rs", 143.22),
    ]


def initial_cars() -> List[CarAsset]:
    return [
        CarAsset(
            "car1", "Opel", "Cascada", 2013, "blue", "person1", 2500.0,
            [
                CarMalfunction("Shakey steering wheel", 50.0),
                CarMalfunction("Oil leaking", 75.0),
            ],
        ),
        CarAsset(
            "car2", "Audi", "A4", 2016, "red", "person2", 4000.0,
            [CarMalfunction("Flat front left tyre", 15.0)],
        ),
        CarAsset(
            "car3", "Volvo", "V60", 2014, "green", "person1", 3200.0,
            [
                CarMalfunction("Cracked windscreen", 100.0),
                CarMalfunction("Loose back wiper", 5.0),
            ],
        ),
        CarAsset(
            "car4", "Zastava", "Yugo 45", 1985, "yellow", "person1", 300.0,
            [
                CarMalfunction("Broken alternator", 80.0),
                CarMalfunction("Broken spark plug", 70.0),
                CarMalfunction("Loose exhaust pipe", 10.0),
                CarMalfunction("Overheating", 120.0),
            ],
        ),
        CarAsset("car5", "Mercedes-Benz", "A-class", 2018, "black", "person3", 140.0),
        CarAsset(
            "car6", "BMW", "X5", 2018, "white", "person2", 6500.0,
            [CarMalfunction("Cracked headlight", 30.0)],
        ),
    ]
