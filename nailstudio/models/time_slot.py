from nailstudio import db

# Days of the week constants (0 = Monday, 6 = Sunday)
MONDAY = 0
TUESDAY = 1
WEDNESDAY = 2
THURSDAY = 3
FRIDAY = 4
SATURDAY = 5
SUNDAY = 6

DAY_NAMES = {
    MONDAY: 'Monday',
    TUESDAY: 'Tuesday',
    WEDNESDAY: 'Wednesday',
    THURSDAY: 'Thursday',
    FRIDAY: 'Friday',
    SATURDAY: 'Saturday',
    SUNDAY: 'Sunday'
}


class TimeSlot(db.Model):
    """A recurring grid cell on one weekday, not tied to a calendar date"""
    __tablename__ = 'time_slots'

    id = db.Column(db.Integer, primary_key=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False, index=True)  # 0-6 (Monday-Sunday)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    # One cell per start time on each weekday
    __table_args__ = (
        db.UniqueConstraint('day_of_week', 'start_time', name='uq_time_slot_day_start'),
    )

    def __init__(self, start_time, end_time, day_of_week, is_available=True):
        self.start_time = start_time
        self.end_time = end_time
        self.day_of_week = day_of_week
        self.is_available = is_available

    @property
    def day_name(self):
        return DAY_NAMES.get(self.day_of_week, 'Unknown')

    def __repr__(self):
        return f'<TimeSlot: Day {self.day_of_week} {self.start_time} - {self.end_time}>'
