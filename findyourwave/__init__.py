"""Find Your Wave: surf forecasts, beach listings and a wave-finder chat."""
