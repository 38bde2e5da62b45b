"""Application services.

Services implement the build logic, coordinating the domain layer (core/)
with infrastructure (platform/) and reporting through output/.
"""
