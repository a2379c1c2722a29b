import os

os.environ.setdefault("USE_MOCK_DB", "true")

from fastapi.testclient import TestClient
from civiclink.main import app

client = TestClient(app)
CITIZEN = {'X-User-Id': 'smoke_citizen'}


def check(label, method, path, **kwargs):
    print(f'\n{label}:')
    try:
        resp = client.request(method, path, **kwargs)
    except Exception as e:
        print('call raised exception:', e)
        return None
    print(resp.status_code)
    try:
        body = resp.json()
    except ValueError:
        print(resp.text)
        return None
    print(body)
    return body


check('ROOT', 'GET', '/')
check('HEALTH', 'GET', '/health')
check('DB HEALTH', 'GET', '/health/db')

created = check('CREATE', 'POST', '/complaints', headers=CITIZEN, json={
    'title': 'Streetlight not working',
    'description': 'Streetlight out near the bus stop.',
    'category': 'Electricity',
    'location': {'lat': 19.0760, 'lng': 72.8777, 'address': 'Bus stop'},
})
check('LIST', 'GET', '/complaints', headers=CITIZEN)
if created and created.get('id'):
    check('TIMELINE', 'GET', f"/complaints/{created['id']}/timeline", headers=CITIZEN)
check('NO CALLER', 'GET', '/complaints')
