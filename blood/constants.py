BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

BLOOD_GROUP_CHOICES = [(blood_type, blood_type) for blood_type in BLOOD_TYPES]

INSTITUTION_HOSPITAL = 'hospital'
INSTITUTION_PMI = 'pmi'

INSTITUTION_TYPE_CHOICES = [
    (INSTITUTION_HOSPITAL, 'Hospital'),
    (INSTITUTION_PMI, 'PMI (Blood Bank)'),
]

# Blood request lifecycle as reported by the server.
REQUEST_STATUS_LABELS = {
    'pending': 'Pending',
    'approved': 'Approved',
    'in_fulfillment': 'In Fulfillment',
    'pickup_scheduled': 'Pickup Scheduled',
    'rejected': 'Rejected',
    'ready': 'Ready',
    'confirmed': 'Confirmed',
    'completed': 'Completed',
    'cancelled': 'Cancelled',
}

REQUEST_STATUS_BADGES = {
    'pending': 'warning',
    'approved': 'primary',
    'in_fulfillment': 'info',
    'pickup_scheduled': 'info',
    'rejected': 'danger',
    'ready': 'success',
    'confirmed': 'success',
    'completed': 'success',
    'cancelled': 'secondary',
}

URGENCY_CHOICES = [
    ('low', 'Low'),
    ('medium', 'Medium'),
    ('high', 'High'),
    ('urgent', 'Urgent'),
]

UNIT_TYPE_CHOICES = [
    ('whole_blood', 'Whole Blood'),
    ('prc', 'Packed Red Cells'),
    ('tc', 'Thrombocyte Concentrate'),
    ('ffp', 'Fresh Frozen Plasma'),
]

STOCK_CHANGE_CHOICES = [
    ('add', 'Add stock'),
    ('reduce', 'Reduce stock'),
]

STOCK_HISTORY_ACTIONS = [
    ('', 'All actions'),
    ('add', 'Added'),
    ('reduce', 'Reduced'),
    ('expired', 'Expired'),
    ('used', 'Used'),
]

PICKUP_STATUS_FILTERS = [
    ('all', 'All'),
    ('scheduled', 'Scheduled'),
    ('completed', 'Completed'),
]

PICKUP_CODE_LENGTH = 8
