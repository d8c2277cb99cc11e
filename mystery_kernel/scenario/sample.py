"""
Sample case — "Murder at the Office", playable without a content generator.

Setting: the CEO of a small company is found dead in his office.
- 4 characters: 1 victim, 1 criminal, 2 witnesses
- 3 places: lobby (start), CEO office, parking lot
- 5 clues, two of them locked behind flags
- 1 crime before play begins, 3 scripted events during the evening
"""

import json

from mystery_kernel.content.schema import ScenarioPayload
from mystery_kernel.models.world import GameState

BASE_TIME = 960     # 16:00
START_TIME = 1080   # 18:00
END_TIME = 1440     # 24:00


def sample_scenario_payload() -> dict:
    """The sample case in bootstrap wire form."""
    return {
        "title": "Murder at the Office",
        "description": (
            "John Smith, CEO of a small firm, lies dead in his office. "
            "Three people were in the building that afternoon."
        ),
        "phase": "INTRODUCTION",
        "player": {
            "currentLocation": "place_lobby",
            "tools": ["Notebook", "Flashlight"],
        },
        "characters": [
            {
                "id": "char_alice",
                "name": "Alice Johnson",
                "traits": ["Suspicious", "Nervous", "Secretive"],
                "initialLocation": "place_lobby",
                "isCriminal": True,
                "knownClues": ["clue_1", "clue_2", "clue_5"],
                "mentalState": "Anxious",
                "items": ["Key Card"],
            },
            {
                "id": "char_bob",
                "name": "Bob Williams",
                "traits": ["Helpful", "Observant", "Honest"],
                "initialLocation": "place_office",
                "knownClues": ["clue_3"],
                "mentalState": "Cooperative",
            },
            {
                "id": "char_charlie",
                "name": "Charlie Brown",
                "traits": ["Security guard", "Alert", "Diligent"],
                "initialLocation": "place_lobby",
                "knownClues": ["clue_4"],
                "items": ["Security Badge"],
            },
            {
                "id": "char_victim",
                "name": "John Smith",
                "traits": ["CEO", "Wealthy"],
                "initialLocation": "place_office",
                "isVictim": True,
                "mentalState": "Deceased",
                "hidden": True,
                "unlockConditions": ["found_clue_1"],
            },
        ],
        "places": [
            {
                "id": "place_lobby",
                "name": "Building Lobby",
                "description": "A busy, well-lit lobby with a reception desk.",
                "traits": ["Public", "Busy", "Well-lit"],
                "availableClues": ["clue_3"],
                "connections": ["place_office", "place_parking"],
            },
            {
                "id": "place_office",
                "name": "CEO Office",
                "description": "A private office. The window is shattered.",
                "traits": ["Crime Scene", "Private"],
                "availableClues": ["clue_1", "clue_2"],
                "connections": ["place_lobby"],
            },
            {
                "id": "place_parking",
                "name": "Parking Lot",
                "description": "A dark, isolated lot behind the building.",
                "traits": ["Outdoor", "Dark", "Isolated"],
                "availableClues": ["clue_5"],
                "connections": ["place_lobby"],
            },
        ],
        "clues": [
            {
                "id": "clue_1",
                "name": "Bloodstain",
                "description": "Fresh bloodstain on the floor near the desk.",
                "location": "place_office",
            },
            {
                "id": "clue_2",
                "name": "Broken window",
                "description": "The window was broken from the inside.",
                "location": "place_office",
            },
            {
                "id": "clue_3",
                "name": "Security footage",
                "description": "Camera footage shows Alice entering just before the incident.",
                "location": "place_lobby",
            },
            {
                "id": "clue_4",
                "name": "Guard's testimony",
                "description": "Charlie saw Alice looking nervous and leaving in a hurry.",
                "location": "char_charlie",
                "unlockConditions": ["talked_to_charlie"],
            },
            {
                "id": "clue_5",
                "name": "Fingerprints",
                "description": "Fresh fingerprints on a car door match Alice Johnson.",
                "location": "place_parking",
                "unlockConditions": ["found_clue_1", "investigated_office"],
            },
        ],
        "timeline": {
            "baseTime": {"minutes": BASE_TIME},
            "startTime": {"minutes": START_TIME},
            "endTime": {"minutes": END_TIME},
            "events": [
                {
                    "id": "event_murder",
                    "time": {"minutes": 1020},
                    "eventType": "CRIME",
                    "description": "John Smith is struck down in his office.",
                    "characterId": "char_alice",
                    "placeId": "place_office",
                },
                {
                    "id": "event_office_sealed",
                    "time": {"minutes": 1200},
                    "eventType": "PLACE_CHANGE",
                    "description": "Police tape goes up across the office door.",
                    "placeId": "place_office",
                },
                {
                    "id": "event_alice_movement",
                    "time": {"minutes": 1260},
                    "eventType": "CHARACTER_MOVEMENT",
                    "description": "Alice slips out to the parking lot.",
                    "characterId": "char_alice",
                    "placeId": "place_parking",
                },
                {
                    "id": "event_evidence_found",
                    "time": {"minutes": 1320},
                    "eventType": "CUSTOM",
                    "description": "A patrol officer reports something odd in the parking lot.",
                    "characterId": "",
                    "placeId": "place_parking",
                },
            ],
        },
        "flags": [
            {"id": "found_clue_1", "value": False},
            {"id": "investigated_office", "value": False},
            {"id": "talked_to_charlie", "value": False},
        ],
    }


def sample_scenario_json() -> str:
    return json.dumps(sample_scenario_payload())


def sample_game_state() -> GameState:
    """The sample case as a ready-to-play first snapshot."""
    return ScenarioPayload.model_validate(sample_scenario_payload()).to_game_state()
