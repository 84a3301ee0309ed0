"""Show and episode management -- models, schemas, repository, and the ad revenue calculator.

Provides SQLAlchemy models (ShowModel, EpisodeModel), Pydantic schemas for
shows, episodes, monetization settings and revenue projections, ShowRepository
for async CRUD, and the per-episode revenue estimate in revenue.py.
"""
