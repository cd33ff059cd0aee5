from nailstudio import db
from datetime import datetime


class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # Duration in minutes
    image_url = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, name, price, duration, description=None, image_url=None, is_active=True):
        self.name = name
        self.price = price
        self.duration = duration
        self.description = description
        self.image_url = image_url
        self.is_active = is_active

    def __repr__(self):
        return f'<Service {self.name}>'
