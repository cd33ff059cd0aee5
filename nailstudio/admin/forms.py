from flask_wtf import FlaskForm
from wtforms import (StringField, TextAreaField, SelectField, SubmitField, BooleanField, DecimalField,
                     IntegerField, TimeField, HiddenField)
from wtforms.validators import DataRequired, InputRequired, Length, Optional, NumberRange, ValidationError, URL
from nailstudio.models.appointment import STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_PENDING
from nailstudio.models.time_slot import TimeSlot, DAY_NAMES


class ServiceForm(FlaskForm):
    """Form for creating or updating a salon service"""
    name = StringField('Service Name', validators=[DataRequired(message='Name is required'), Length(max=100)])
    description = TextAreaField('Description', validators=[Optional(), Length(max=500)])
    price = DecimalField('Price (mkd)', places=2, validators=[
        InputRequired(),
        NumberRange(min=0.01, message='Price must be greater than 0')
    ])
    duration = IntegerField('Duration (minutes)', validators=[
        InputRequired(),
        NumberRange(min=1, message='Duration must be greater than 0')
    ])
    image_url = StringField('Image URL', validators=[Optional(), URL(), Length(max=255)])
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Save Service')


class TimeSlotForm(FlaskForm):
    """Form for creating or updating one grid cell"""
    id = HiddenField()
    day_of_week = SelectField('Day of Week', coerce=int,
                              choices=[(day, name) for day, name in DAY_NAMES.items()])
    start_time = TimeField('Start Time', validators=[DataRequired(message='Start time is required')])
    end_time = TimeField('End Time', validators=[DataRequired(message='End time is required')])
    is_available = BooleanField('Available', default=True)
    submit = SubmitField('Save Time Slot')

    def validate_start_time(self, start_time):
        if start_time.data is None or self.day_of_week.data is None:
            return
        slot = TimeSlot.query.filter_by(day_of_week=self.day_of_week.data, start_time=start_time.data).first()
        if slot and str(slot.id) != (self.id.data or ''):
            raise ValidationError('This day already has a time slot starting at this time')

    def validate_end_time(self, end_time):
        if self.start_time.data and end_time.data and end_time.data <= self.start_time.data:
            raise ValidationError('End time must be after start time')


class GenerateSlotsForm(FlaskForm):
    """Form for filling a weekday with back-to-back 30 minute slots"""
    day_of_week = SelectField('Day of Week', coerce=int,
                              choices=[(day, name) for day, name in DAY_NAMES.items()])
    open_time = TimeField('Opening Time', validators=[DataRequired()])
    close_time = TimeField('Closing Time', validators=[DataRequired()])
    submit = SubmitField('Generate Slots')

    def validate_close_time(self, close_time):
        if self.open_time.data and close_time.data and close_time.data <= self.open_time.data:
            raise ValidationError('Closing time must be after opening time')


class AppointmentStatusForm(FlaskForm):
    """Form for confirming or cancelling an appointment"""
    status = SelectField('Status', validators=[DataRequired()], choices=[
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled')
    ])
    submit = SubmitField('Update Status')


class ActionForm(FlaskForm):
    """CSRF-only form for delete / toggle buttons"""
    submit = SubmitField()
