# Motorpool Dispatch: database models
# Import all models here for SQLAlchemy discovery

from app.models.department import Department          # noqa
from app.models.vehicle import Vehicle, VehicleType   # noqa
from app.models.driver import Driver                  # noqa
from app.models.trip import Trip                      # noqa
