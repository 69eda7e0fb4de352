"""HTTP adapter for the Legato discovery engine."""
