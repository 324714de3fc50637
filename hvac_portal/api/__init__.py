"""HTTP layer of the HVAC portal."""
