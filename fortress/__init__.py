"""
Fortress inventory backend.

FastAPI application that hosts the automation rule engine, inventory
records, stock reconciliation and the tenant activity log.
"""
