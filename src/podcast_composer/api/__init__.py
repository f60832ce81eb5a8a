"""External API access for the notebook server.

Submodules:
    client -- Async REST client (notebooks, sources, notes, context build,
              episode profiles, podcast generation)
    lookup -- Id / fuzzy-name resolution of notebooks and episode profiles
"""
