import json
from datetime import date, time, datetime
from decimal import Decimal


class DecimalEncoder(json.JSONEncoder):
    """
    JSON encoder for audit details: money values become floats,
    dates and times become ISO strings
    """
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (date, time, datetime)):
            return obj.isoformat()
        return super().default(obj)
