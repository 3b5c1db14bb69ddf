"""Report annotation helpers: matchers, parsing, annotation capping and PR comments."""
