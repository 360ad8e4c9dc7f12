"""
tablebridge web - FastAPI surface over the CRUD executor.
"""
