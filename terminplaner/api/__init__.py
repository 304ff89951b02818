from .auth import router as auth
from .public import router as public
from .availability import router as availability
from .topics import router as topics
from .timeoff import router as timeoff
from .bookings import router as bookings
from .users import router as users
from .departments import router as departments
from .batch import router as batch
from .settings import router as settings
