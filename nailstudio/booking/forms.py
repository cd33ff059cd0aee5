from flask_wtf import FlaskForm
from wtforms import SelectMultipleField, TextAreaField, SubmitField, DateField, IntegerField
from wtforms.validators import DataRequired, Length
from wtforms.widgets import ListWidget, CheckboxInput


class MultiCheckboxField(SelectMultipleField):
    widget = ListWidget(prefix_label=False)
    option_widget = CheckboxInput()


class ServiceSelectionForm(FlaskForm):
    """Step 1: pick one or more services"""
    service_ids = MultiCheckboxField('Select Your Services', coerce=int)
    submit = SubmitField('Select Date & Time')


class DateSelectionForm(FlaskForm):
    booking_date = DateField('Date', validators=[DataRequired()], format='%Y-%m-%d')


class SlotSelectionForm(FlaskForm):
    booking_date = DateField('Date', validators=[DataRequired()], format='%Y-%m-%d')
    time_slot_id = IntegerField('Time', validators=[DataRequired()])


class ConfirmBookingForm(FlaskForm):
    notes = TextAreaField('Special Requests (Optional)', validators=[Length(max=500)])
    submit = SubmitField('Confirm Booking')


class StepForm(FlaskForm):
    """Carries only the CSRF token for back / next / start over buttons"""
    submit = SubmitField()
