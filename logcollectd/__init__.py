"""logcollectd: UDP log collector with hourly SQLite buckets."""
