"""geocode/ -- District and upazila reference data."""
