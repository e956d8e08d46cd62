"""HTTP API for Sitescribe."""
