from educore.api.routes import attendance, fees, health, learners, subdomains, tenant

ROUTERS = [
    health.router,
    tenant.router,
    subdomains.router,
    learners.router,
    attendance.router,
    fees.router,
]

__all__ = ["ROUTERS"]
