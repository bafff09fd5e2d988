from .base import Base
from .customers import Customer
