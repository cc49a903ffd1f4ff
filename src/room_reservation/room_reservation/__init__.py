"""Room Reservation package.

Feature modules (rooms, reservations, attendance, sweeper, ...) follow the same
shape: a pure domain model, a repository Protocol with a MySQL implementation,
a service holding the business rules and a thin Flask controller.
"""
