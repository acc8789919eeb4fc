GENDER_OPTIONS = ["Male", "Female", "Other"]

IDENTIFICATION_TYPES = [
    "Birth Certificate",
    "Driver's License",
    "Medical Insurance Card/Policy",
    "Military ID Card",
    "National Identity Card",
    "Passport",
    "Resident Alien Card (Green Card)",
    "Social Security Card",
    "State ID Card",
    "Student ID Card",
    "Voter ID Card",
]

DOCTORS = [
    {"name": "John Green", "image": "/static/images/dr-green.png"},
    {"name": "Leila Cameron", "image": "/static/images/dr-cameron.png"},
    {"name": "David Livingston", "image": "/static/images/dr-livingston.png"},
    {"name": "Evan Peter", "image": "/static/images/dr-peter.png"},
    {"name": "Jane Powell", "image": "/static/images/dr-powell.png"},
    {"name": "Alex Ramirez", "image": "/static/images/dr-remirez.png"},
    {"name": "Jasmine Lee", "image": "/static/images/dr-lee.png"},
    {"name": "Alyana Cruz", "image": "/static/images/dr-cruz.png"},
    {"name": "Hardik Sharma", "image": "/static/images/dr-sharma.png"},
]

PATIENT_FORM_DEFAULTS = {
    "name": "",
    "email": "",
    "phone": "",
    "birthDate": None,
    "gender": "Male",
    "address": "",
    "occupation": "",
    "emergencyContactName": "",
    "emergencyContactNumber": "",
    "primaryPhysician": "",
    "insuranceProvider": "",
    "insurancePolicyNumber": "",
    "allergies": "",
    "currentMedication": "",
    "familyMedicalHistory": "",
    "pastMedicalHistory": "",
    "identificationType": "Birth Certificate",
    "identificationNumber": "",
    "identificationDocument": [],
    "treatmentConsent": False,
    "disclosureConsent": False,
    "privacyConsent": False,
}
