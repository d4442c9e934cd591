def test_create_participant(client, admin_headers):
    response = client.post(
        '/participants/',
        json={
            'full_name': '  Ayu Lestari ',
            'email': 'Ayu.Lestari@Example.com',
            'student_number': '2401001',
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    participant = response.json()
    assert participant['full_name'] == 'Ayu Lestari'
    assert participant['email'] == 'ayu.lestari@example.com'
    assert participant['is_active'] is True

    response = client.get(f'/participants/{participant["id"]}', headers=admin_headers)
    assert response.status_code == 200


def test_create_participant_duplicate_email(client, test_participant, admin_headers):
    response = client.post(
        '/participants/',
        json={'full_name': 'Someone Else', 'email': test_participant.email},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_get_participant_requires_admin_key(client, test_participant, scanner_headers):
    response = client.get(f'/participants/{test_participant.id}', headers=scanner_headers)
    assert response.status_code == 403


def test_issue_participant_token(client, test_participant, admin_headers):
    response = client.post(
        '/participants/token',
        params={'email': test_participant.email},
        headers=admin_headers,
    )
    assert response.status_code == 200
    token = response.json()
    assert token['token_type'] == 'Bearer'

    response = client.get(
        '/participants/me',
        headers={'Authorization': f'Bearer {token["access_token"]}'},
    )
    assert response.status_code == 200
    assert response.json()['id'] == test_participant.id


def test_issue_token_for_inactive_participant(
    client, create_test_participant, admin_headers
):
    participant = create_test_participant(4, is_active=False)
    response = client.post(
        '/participants/token',
        params={'email': participant.email},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_issue_participant_token_requires_admin_key(
    client, test_participant, scanner_headers
):
    response = client.post(
        '/participants/token',
        params={'email': test_participant.email},
        headers=scanner_headers,
    )
    assert response.status_code == 403
