"""Rule engine and rules for scanning cached cloud API results."""
