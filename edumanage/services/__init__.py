"""Business logic, one module per resource. Services raise ServiceError subclasses."""
