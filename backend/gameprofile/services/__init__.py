"""Profile domain services: friend graph, progress merging and read projections.

Each service takes the SQLAlchemy session it should use, keeping storage
wiring in the app factory and transport concerns in the blueprints.
"""
