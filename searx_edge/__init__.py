"""
searx-edge: a stateless edge proxy that turns public SearXNG instances'
HTML result pages into SearXNG-style JSON.
"""

__version__ = "0.1.0"
