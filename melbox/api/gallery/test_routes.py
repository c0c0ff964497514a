# melbox/api/gallery/test_routes.py
"""
Usage: python -m pytest melbox/api/gallery/test_routes.py -v
"""
PHOTO = {
    'title': 'Princess tea party', 'date': 'March 2025', 'category': 'Princess',
    'image_url': 'https://storage.googleapis.com/bucket/gallery/tea.jpg',
}


def _admin(auth_headers):
    return auth_headers(user_id='admin', email='admin@example.com', is_admin=True)


def test_admin_adds_and_removes_photos(client, auth_headers, storage_service):
    admin = _admin(auth_headers)

    res = client.post('/api/gallery/photos', json=PHOTO, headers=admin)
    assert res.status_code == 201
    photo = res.get_json()
    assert photo['likes'] == 0
    assert photo['category_color'] == '#f472b6'

    assert client.post('/api/gallery/photos', json=PHOTO, headers=auth_headers()).status_code == 403

    assert client.delete(f"/api/gallery/photos/{photo['photo_id']}", headers=admin).status_code == 204
    storage_service.delete_by_url.assert_called_once_with(PHOTO['image_url'])
    assert client.get('/api/gallery/photos').get_json()['photos'] == []

def test_filter_by_category(client, auth_headers):
    admin = _admin(auth_headers)
    client.post('/api/gallery/photos', json=PHOTO, headers=admin)
    client.post('/api/gallery/photos', json=dict(PHOTO, category='Superhero'), headers=admin)

    photos = client.get('/api/gallery/photos?category=Superhero').get_json()['photos']
    assert [p['category'] for p in photos] == ['Superhero']

def test_photo_likes_never_go_negative(client, auth_headers):
    photo_id = client.post('/api/gallery/photos', json=PHOTO, headers=_admin(auth_headers)).get_json()['photo_id']

    res = client.post(f'/api/gallery/photos/{photo_id}/like', headers=auth_headers())
    assert res.get_json() == {'photo_id': photo_id, 'likes': 1}
    client.post(f'/api/gallery/photos/{photo_id}/like', json={'delta': -1}, headers=auth_headers())
    res = client.post(f'/api/gallery/photos/{photo_id}/like', json={'delta': -1}, headers=auth_headers())
    assert res.get_json()['likes'] == 0

    assert client.post(f'/api/gallery/photos/{photo_id}/like', json={'delta': 5}, headers=auth_headers()).status_code == 400
    assert client.post('/api/gallery/photos/nope/like', headers=auth_headers()).status_code == 404
