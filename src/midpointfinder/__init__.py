"""Top-N city pairings ranked by how close their geodesic midpoint lies to a target."""

__version__ = "0.1.0"
