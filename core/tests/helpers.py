from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken


def auth_client(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {RefreshToken.for_user(user).access_token}')
    return client


def student_payload(**overrides) -> dict:
    data = {
        'name': 'Ravi Kumar',
        'rollNumber': '22CS001',
        'gender': 'Male',
        'course': 'B.Tech',
        'branch': 'CSE',
        'year': 2,
        'batch': '2022-2026',
        'academicYear': '2024-2025',
        'studentPhone': '9876543210',
        'parentPhone': '9876543211',
        'email': 'ravi@example.com',
        'category': 'A+',
        'roomNumber': '302',
    }
    data.update(overrides)
    return data
