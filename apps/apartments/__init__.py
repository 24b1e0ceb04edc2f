"""Apartments app package.

Holds the apartment listing with its dual nightly/monthly pricing. The
booking core only reads apartments: pricing for rent computation, the
owner for money movement and the status for bookability.
"""
