"""Black-box prober: repeated health checks with badness scoring and alerting."""
