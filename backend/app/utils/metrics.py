"""Prometheus metrics for model calls, recovery, and planning outcomes."""

from prometheus_client import Counter, Histogram

llm_latency_ms = Histogram(
    "llm_latency_ms",
    "Generative model call latency in milliseconds",
    ["purpose", "outcome"],
    buckets=[100, 500, 1000, 2000, 5000, 10000, 30000, 60000, 120000, 300000],
)

llm_json_recovery_total = Counter(
    "llm_json_recovery_total",
    "Model responses parsed, by the recovery strategy that succeeded",
    ["strategy"],
)

node_type_fallback_total = Counter(
    "node_type_fallback_total",
    "Unrecognized node type labels mapped to the default type",
)

itinerary_generation_total = Counter(
    "itinerary_generation_total",
    "Itinerary generations by path taken",
    ["path"],
)

itinerary_mutation_total = Counter(
    "itinerary_mutation_total",
    "Conversational mutations by outcome",
    ["outcome"],
)

poi_search_errors_total = Counter(
    "poi_search_errors_total",
    "Failed POI category searches",
    ["category"],
)

place_verification_total = Counter(
    "place_verification_total",
    "Place verification lookups by outcome",
    ["outcome"],
)
