"""
Data models: closed enums, ORM entities, pydantic schemas, domain events
"""
