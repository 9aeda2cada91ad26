"""Service layer: account lifecycle, data access and notifications"""
