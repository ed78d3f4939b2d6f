"""Prometheus metrics for the listing ingestion pipeline."""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("listing_ingest", "Listing ingestion application info")
app_info.info({"version": "0.1.0", "name": "listing-ingest"})

# Acquisition metrics
fetch_attempts_total = Counter(
    "listing_fetch_attempts_total",
    "Total number of listing page fetch attempts",
    ["source", "status"],
)

fetch_duration_seconds = Histogram(
    "listing_fetch_duration_seconds",
    "Time spent acquiring listing pages",
    ["source"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Extraction metrics
candidates_extracted_total = Counter(
    "listing_candidates_extracted_total",
    "Candidate records produced per source",
    ["source", "origin"],  # origin: extracted | synthetic
)

fallback_activations_total = Counter(
    "listing_synthetic_fallback_total",
    "Times the synthetic record generator replaced real extraction",
    ["source", "reason"],  # reason: fetch_failed | empty_extraction
)

# Normalization metrics
normalizations_total = Counter(
    "listing_normalizations_total",
    "Candidate records normalized",
    ["source", "mode"],  # mode: ai | fallback
)

# Reconciliation metrics
reconcile_outcomes_total = Counter(
    "listing_reconcile_outcomes_total",
    "Reconciliation outcomes per record",
    ["outcome"],  # created | duplicate | error
)

# Orchestrator metrics
scrape_runs_total = Counter(
    "listing_scrape_runs_total",
    "Total number of scrape runs",
    ["scope", "status"],
)

last_scrape_timestamp = Gauge(
    "listing_last_scrape_timestamp",
    "Timestamp of the last completed scrape run",
    ["scope"],
)
