"""Prompt construction for itinerary generation and conversational edits."""

from backend.app.models.conditions import SearchConditions
from backend.app.models.itinerary import Itinerary, TravelNode
from backend.app.models.poi import CandidatePOI, PoiCandidates

DEFAULT_ARRIVAL_TIME = "10:00"
DEFAULT_DEPARTURE_TIME = "17:00"

TIME_SLOT_VOCABULARY = (
    "arrival/breakfast/morning/lunch/afternoon/dinner/evening/hotel/departure"
)
TRANSPORT_MODE_VOCABULARY = "walk/bus/subway/taxi/drive"

JSON_REMINDER = "[Reply with the JSON object only, no other text]"


def _hour(clock: str) -> int:
    return int(clock.split(":")[0])


def first_day_guidance(arrival_time: str) -> str:
    """Day-one plan shape for the arrival hour."""
    hour = _hour(arrival_time)
    if hour >= 21:
        return (
            f"The traveler arrives late ({arrival_time}). Day 1 is arrival and hotel "
            "check-in only. Do not schedule anything else."
        )
    if hour >= 18:
        return (
            f"The traveler arrives in the evening ({arrival_time}). Day 1: arrival, "
            "hotel check-in, dinner, optional night activity (night views, night market)."
        )
    if hour >= 14:
        return (
            f"The traveler arrives in the afternoon ({arrival_time}). Day 1: arrival, "
            "hotel check-in, an afternoon sight, dinner, optional night activity."
        )
    if hour >= 12:
        return (
            f"The traveler arrives around noon ({arrival_time}). Day 1: arrival, lunch, "
            "hotel check-in, an afternoon sight, dinner, optional night activity."
        )
    return (
        f"The traveler arrives in the morning ({arrival_time}). Day 1 is a full day: "
        "arrival, morning sight, lunch, afternoon sight, dinner, hotel check-in."
    )


def last_day_guidance(departure_time: str) -> str:
    """Final-day plan shape for the departure hour."""
    hour = _hour(departure_time)
    if hour <= 9:
        return (
            f"The traveler leaves very early ({departure_time}). The last day is an "
            f"optional breakfast, then leave for the station/airport by {departure_time}. "
            "Do not schedule anything else."
        )
    if hour <= 12:
        return (
            f"The traveler leaves in the morning ({departure_time}). The last day: "
            f"breakfast, an optional short activity, leave by {departure_time}."
        )
    if hour <= 15:
        return (
            f"The traveler leaves in the early afternoon ({departure_time}). The last "
            f"day: breakfast, morning sight, lunch, leave by {departure_time}."
        )
    if hour <= 18:
        return (
            f"The traveler leaves in the afternoon ({departure_time}). The last day: "
            "breakfast, morning sight, lunch, a short afternoon activity, "
            f"leave by {departure_time}."
        )
    return (
        f"The traveler leaves in the evening ({departure_time}). The last day can be "
        "nearly full: breakfast, morning sight, lunch, afternoon sight, "
        f"leave by {departure_time}."
    )


def _poi_line(index: int, poi: CandidatePOI) -> str:
    return (
        f"{index}. {poi.name} | address: {poi.address} | "
        f"coordinate: {poi.location or 'unknown'} | {poi.description}"
    )


def format_poi_listing(
    candidates: PoiCandidates,
    max_hotels: int = 5,
    max_restaurants: int = 15,
    max_attractions: int = 15,
) -> str:
    """Numbered candidate lists, capped per category."""
    sections = [
        ("Available hotels", candidates.hotels[:max_hotels]),
        ("Available restaurants", candidates.restaurants[:max_restaurants]),
        ("Available attractions", candidates.attractions[:max_attractions]),
    ]
    blocks = []
    for title, pois in sections:
        lines = [f"{title} (choose from these; coordinates are for route planning):"]
        lines.extend(_poi_line(i, poi) for i, poi in enumerate(pois, start=1))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _preferences_block(conditions: SearchConditions, *, include_terrain: bool) -> str:
    arrival = conditions.arrival_time or DEFAULT_ARRIVAL_TIME
    departure = conditions.departure_time or DEFAULT_DEPARTURE_TIME
    lines = ["Traveler preferences:"]
    if include_terrain:
        lines.append(
            f"- Geographic features: {', '.join(conditions.geographic_features) or 'no preference'}"
        )
        lines.append(f"- Climate: {conditions.climate_preference or 'no preference'}")
    lines.extend(
        [
            f"- Food: {', '.join(conditions.food_preferences) or 'no preference'}",
            f"- Activities: {', '.join(conditions.activity_types) or 'sightseeing'}",
            f"- Budget: {conditions.budget_level or 'medium'}",
            f"- Travel style: {conditions.travel_style or 'relaxed'}",
            f"- Arrival time: {arrival}",
            f"- Departure time: {departure}",
        ]
    )
    return "\n".join(lines)


def _planning_rules(destination: str, arrival: str, departure: str) -> str:
    return f"""Planning rules (mandatory):

0. First day, based on arrival time:
   {first_day_guidance(arrival)}
   - The first node of day 1 is the arrival (timeSlot "arrival") at {arrival}.

0.5 Last day, based on departure time:
   {last_day_guidance(departure)}
   - The last node of the last day is the departure (timeSlot "departure") at {departure}.

1. Keep each day's stops geographically contiguous. Use coordinates; never cross the
   city and back within one day.

2. Daily structure, in time order: breakfast (07:30-08:30), morning sight
   (09:00-11:30), lunch (12:00-13:00), afternoon sight (14:00-17:00), dinner
   (18:00-19:00), evening activity (19:30-21:00). Every day except the last ends with
   a return to the hotel (timeSlot "hotel"). Day 1 starts with arriving in {destination}.

3. activity says what happens ("Morning: walk the West Lake causeways"), name is the
   concrete place, description gives concrete recommendations (dishes, highlights).

4. For food streets and snack markets, list the specific snacks and stalls to try in
   description instead of generic phrases.

5. For large multi-entry scenic areas, name is a concrete starting point (pier, gate,
   visitor center), isStartingPoint is true and scenicAreaName is the area's name.

6. timeSlot is required on every node: {TIME_SLOT_VOCABULARY}.

7. priceInfo is required for restaurants (per person), hotels (per night) and
   attractions (ticket price). ticketInfo (booking/ticketing) is required for
   attractions. tips is optional.

8. Every node except each day's first carries transportMode
   ({TRANSPORT_MODE_VOCABULARY}), transportDuration (minutes) and transportNote.

9. type is one of: attraction, restaurant, hotel, transport."""


_NODE_SHAPE = """[
  {
    "name": "place name",
    "type": "attraction/restaurant/hotel/transport",
    "address": "address",
    "description": "concrete recommendations",
    "activity": "time of day + what to do",
    "timeSlot": "%s",
    "estimatedDuration": minutes,
    "scheduledTime": "HH:MM",
    "dayIndex": day number starting at 1,
    "order": position within the day starting at 1,
    "isStartingPoint": false,
    "scenicAreaName": null,
    "priceInfo": "price information",
    "ticketInfo": "ticket or booking information",
    "tips": "practical tip",
    "transportMode": "%s",
    "transportDuration": minutes,
    "transportNote": "short note on getting there"
  }
]""" % (TIME_SLOT_VOCABULARY, TRANSPORT_MODE_VOCABULARY)


POI_PLANNER_SYSTEM_PROMPT = """You are a professional travel planner. Build the itinerary \
strictly from the places in the provided POI lists.
Key requirements:
1. Each day's stops must be geographically contiguous; use the coordinates to order them.
2. Every node has an activity and a timeSlot.
3. Restaurants name recommended dishes and give priceInfo per person.
4. Attractions say what to see and give priceInfo (ticket) and ticketInfo (booking).
5. Hotels give a nightly priceInfo range.
6. Large scenic areas set isStartingPoint=true and scenicAreaName.
7. Every node except each day's first carries transportMode, transportDuration and \
transportNote.
8. Hotels and restaurants always have concrete, specific names. Never write "a local \
hotel", "a nearby restaurant" or "pick from the list". Breakfast may be "hotel breakfast"."""

AI_ONLY_SYSTEM_PROMPT = """You are a professional travel planner who writes detailed, \
practical itineraries.
Key requirements:
1. Each day's stops must be geographically contiguous.
2. Include breakfast, lunch and dinner with recommended dishes and per-person priceInfo.
3. Respect the traveler's preferences (food, climate, activities).
4. Every node has a concrete address and an estimated duration.
5. Group nodes by day, in time order, each with an activity and a timeSlot.
6. Large scenic areas set isStartingPoint=true and scenicAreaName.
7. Attractions give priceInfo (ticket) and ticketInfo; hotels give a nightly priceInfo.
8. Hotels and restaurants always have concrete, real-sounding establishment names. Never \
write "a local hotel" or "a nearby restaurant". Breakfast may be "hotel breakfast"."""


def build_poi_generation_prompt(
    destination: str,
    conditions: SearchConditions,
    days: int,
    poi_listing: str,
) -> str:
    """User prompt for the POI-backed generation path."""
    arrival = conditions.arrival_time or DEFAULT_ARRIVAL_TIME
    departure = conditions.departure_time or DEFAULT_DEPARTURE_TIME
    return f"""Plan a detailed {days}-day itinerary for {destination}.

{_preferences_block(conditions, include_terrain=False)}

{poi_listing}

{_planning_rules(destination, arrival, departure)}

Return a JSON array where name matches a listed place exactly (or is a reasonable
transport node):
{_NODE_SHAPE}

Return only the JSON array, nothing else."""


def build_ai_only_prompt(destination: str, conditions: SearchConditions, days: int) -> str:
    """User prompt for generation without POI data."""
    arrival = conditions.arrival_time or DEFAULT_ARRIVAL_TIME
    departure = conditions.departure_time or DEFAULT_DEPARTURE_TIME
    return f"""Plan a detailed {days}-day itinerary for {destination}.

{_preferences_block(conditions, include_terrain=True)}

{_planning_rules(destination, arrival, departure)}

Additional requirements:
- Restaurants are specific establishments (with branch where relevant), never "local
  restaurant" or "food in district X".
- Hotels are specific named hotels, never "a downtown hotel".
- Attractions are real, specific sights.
- Addresses are as detailed as possible (district, street, number).

Return a JSON array of nodes shaped like:
{_NODE_SHAPE}

Return only the JSON array, nothing else."""


def _format_node(node: TravelNode) -> list[str]:
    order = int(node.order) if node.order == int(node.order) else node.order
    return [
        f"  [{order}] {node.scheduled_time} - {node.name}",
        f"      activity: {node.activity or 'unspecified'}",
        f"      time slot: {node.time_slot or 'unspecified'}",
        f"      type: {node.type.value}",
        f"      address: {node.address}",
        f"      description: {node.description}",
        f"      duration: {node.estimated_duration} min",
    ]


def format_itinerary_for_prompt(itinerary: Itinerary) -> str:
    """Day-by-day rendering of the itinerary plus the preference log."""
    lines = [
        f"Destination: {itinerary.destination}",
        f"Total days: {itinerary.total_days}",
        "",
    ]
    days = set(range(1, itinerary.total_days + 1)) | {n.day_index for n in itinerary.nodes}
    for day in sorted(days):
        lines.append(f"Day {day}:")
        for node in itinerary.nodes_for_day(day):
            lines.extend(_format_node(node))
        lines.append("")

    if itinerary.user_preferences:
        expressed = ", ".join(itinerary.user_preferences)
        lines.append(f"Preferences the traveler has expressed: {expressed}")

    return "\n".join(lines)


def build_mutation_system_prompt(itinerary: Itinerary) -> str:
    """System prompt for conversational edits of an existing itinerary."""
    return f"""You are a professional travel planner helping the traveler refine their \
{itinerary.destination} itinerary.

You must reply with a JSON object and nothing else.

Current itinerary:
{format_itinerary_for_prompt(itinerary)}
The traveler may ask to swap restaurants ("no spicy food", "I want seafood"), add or
drop sights, adjust timing, or change the hotel.

Reply format (strict):
{{
  "response": "reply text for the traveler",
  "updatedNodes": [...] or null,
  "newPreference": "preference the traveler expressed" or null
}}

Rules:
1. Whenever the traveler asks for any change, return updatedNodes with ALL nodes of
   the itinerary, not only the changed ones.
2. Only change what was asked; keep every other node as it is.
3. type is one of: attraction, restaurant, hotel, transport.
4. timeSlot is one of: {TIME_SLOT_VOCABULARY}.
5. Hotels and restaurants have concrete names.

Each node in updatedNodes:
{{
  "name": "place name",
  "type": "attraction/restaurant/hotel/transport",
  "address": "address",
  "description": "description",
  "activity": "what to do",
  "timeSlot": "time slot",
  "estimatedDuration": minutes,
  "scheduledTime": "HH:MM",
  "dayIndex": day number,
  "order": position within the day
}}

Remember: reply with JSON only, no explanations."""


REPLACEMENT_DESCRIPTION_SYSTEM_PROMPT = (
    "You are a travel advisor. Write short introductions to destinations."
)


def build_replacement_description_prompt(
    original: TravelNode, new_destination: str, reason: str
) -> str:
    """Prompt for a one-paragraph introduction of a replacement stop."""
    return (
        f'The plan was to visit "{original.name}" '
        f"({original.description or 'no description'}), but because of \"{reason}\" "
        f'the traveler is going to "{new_destination}" instead.\n\n'
        f'Write a short introduction (under 50 words) of "{new_destination}" covering '
        "what makes it worth visiting."
    )
