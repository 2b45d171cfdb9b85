"""Hand-curated waypoint sets used instead of the model for known locations.

Each entry pairs a location-name pattern and trip type with a list of
candidate routes; one route is chosen per request by the seed generator.
Waypoints are kept in the same raw ``{"lat", "lng", "name"}`` shape the model
returns so they go through identical validation.
"""

import re

_GARDENS = {"lat": -45.0343, "lng": 168.6576}

QUEENSTOWN_HIKING_ROUTES: list[list[dict]] = [
    # Gardens, esplanade and a short Sunshine Bay leg.
    [
        {**_GARDENS, "name": "Start - Queenstown Gardens Entrance"},
        {"lat": -45.0318, "lng": 168.6621, "name": "Marine Parade Boardwalk"},
        {"lat": -45.0332, "lng": 168.6518, "name": "St Omer Park"},
        {"lat": -45.0349, "lng": 168.6395, "name": "Sunshine Bay Track Access"},
        {"lat": -45.0320, "lng": 168.6395, "name": "Fernhill Rd / Richards Park"},
        {"lat": -45.0306, "lng": 168.6627, "name": "Ballarat St / Camp St"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
    # Gardens, Skyline and Gorge Rd.
    [
        {**_GARDENS, "name": "Start - Queenstown Gardens Entrance"},
        {"lat": -45.0329, "lng": 168.6535, "name": "Skyline Gondola Base"},
        {"lat": -45.0291, "lng": 168.6455, "name": "Skyline Loop Trail Viewpoint"},
        {"lat": -45.0248, "lng": 168.6612, "name": "Recreation Ground (Gorge Rd)"},
        {"lat": -45.0306, "lng": 168.6627, "name": "Ballarat St / Camp St"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
    # Gardens, lake esplanade and the Fernhill loop.
    [
        {**_GARDENS, "name": "Start - Queenstown Gardens Entrance"},
        {"lat": -45.0339, "lng": 168.6472, "name": "Lake Esplanade / Brunswick St"},
        {"lat": -45.0346, "lng": 168.6440, "name": "Lake Esplanade / Fernhill Rd"},
        {"lat": -45.0370, "lng": 168.6405, "name": "Fernhill Scenic Lookout"},
        {"lat": -45.0320, "lng": 168.6395, "name": "Fernhill Rd / Richards Park"},
        {"lat": -45.0314, "lng": 168.6628, "name": "Beach St / Shotover St"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
    # Lakefront out-and-back with a St Omer Park loop.
    [
        {**_GARDENS, "name": "Start/Finish - Queenstown Gardens Entrance"},
        {"lat": -45.03205, "lng": 168.66190, "name": "Marine Parade Boardwalk"},
        {"lat": -45.03140, "lng": 168.66275, "name": "Beach St / Shotover St"},
        {"lat": -45.03290, "lng": 168.65920, "name": "Marine Parade / Church St"},
        {"lat": -45.03325, "lng": 168.65180, "name": "St Omer Park"},
        {"lat": -45.03425, "lng": 168.64650, "name": "Lake Esplanade (Lakeview)"},
        {"lat": -45.03485, "lng": 168.64290, "name": "Lake Esplanade / Fernhill Rd"},
        {"lat": -45.03395, "lng": 168.64760, "name": "Brunswick St / Lake Esplanade"},
        {"lat": -45.03270, "lng": 168.65890, "name": "Marine Parade (Gardens side)"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
    # Skyline and Ben Lomond lower loop (~9-10 km, some climbing).
    [
        {**_GARDENS, "name": "Start/Finish - Queenstown Gardens Entrance"},
        {"lat": -45.03325, "lng": 168.66390, "name": "Stanley St / Shotover St"},
        {"lat": -45.03280, "lng": 168.65360, "name": "Skyline Gondola Base (Brecon St)"},
        {"lat": -45.03020, "lng": 168.64910, "name": "Access to Skyline Rd"},
        {"lat": -45.02860, "lng": 168.64610, "name": "Ben Lomond Track Lower Junction"},
        {"lat": -45.02760, "lng": 168.65190, "name": "Descent toward Robins Rd"},
        {"lat": -45.02480, "lng": 168.66120, "name": "Recreation Ground (Gorge Rd)"},
        {"lat": -45.02990, "lng": 168.66230, "name": "Robins Rd / Ballarat St"},
        {"lat": -45.03200, "lng": 168.66140, "name": "Marine Parade (lakefront)"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
    # Sunshine Bay and Fernhill loop (~11-12 km).
    [
        {**_GARDENS, "name": "Start/Finish - Queenstown Gardens Entrance"},
        {"lat": -45.03325, "lng": 168.65180, "name": "St Omer Park"},
        {"lat": -45.03425, "lng": 168.64650, "name": "Lake Esplanade (Lakeview)"},
        {"lat": -45.03485, "lng": 168.64290, "name": "Lake Esplanade / Fernhill Rd"},
        {"lat": -45.03490, "lng": 168.63960, "name": "Sunshine Bay Track Access"},
        {"lat": -45.03670, "lng": 168.63270, "name": "Sunshine Bay Beach / Lookout"},
        {"lat": -45.03600, "lng": 168.63660, "name": "Climb to Fernhill Rd (switchback)"},
        {"lat": -45.03360, "lng": 168.64220, "name": "Fernhill Rd (eastbound)"},
        {"lat": -45.03395, "lng": 168.64720, "name": "Back to Lake Esplanade"},
        {"lat": -45.03180, "lng": 168.66210, "name": "Marine Parade Boardwalk"},
        {**_GARDENS, "name": "Finish - Queenstown Gardens Entrance"},
    ],
]

# (preset key, location pattern, trip type, candidate routes)
PRESET_ROUTES: list[tuple[str, re.Pattern, str, list[list[dict]]]] = [
    (
        "queenstown-hiking",
        re.compile(r"queenstown", re.IGNORECASE),
        "hiking",
        QUEENSTOWN_HIKING_ROUTES,
    ),
]


def find_preset_routes(
    location: str, trip_type: str
) -> tuple[str, list[list[dict]]] | None:
    """Returns (preset key, routes) for this location and trip type, if any."""
    if not location or not isinstance(location, str):
        return None
    for key, pattern, preset_trip_type, routes in PRESET_ROUTES:
        if preset_trip_type == trip_type and pattern.search(location):
            return key, routes
    return None
