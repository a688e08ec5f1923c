# Models package
from .room import Room
from .booking import Booking
from .room_availability import RoomAvailability
from .ical_config import RoomICalConfig

__all__ = ["Room", "Booking", "RoomAvailability", "RoomICalConfig"]
