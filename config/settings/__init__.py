"""Settings package for the apartment rentals project.

`base.py` contains common configuration shared across environments.
`dev.py`, `prod.py` and `test.py` extend base settings with environment
specific overrides.
"""
