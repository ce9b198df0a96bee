import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from database import slugify
from repositories import posts as post_repo
from schemas.posts import PostDraft


def add_posts(actor_id, count):
    for i in range(count):
        post_repo.create_post(PostDraft(title=f'Clip {i + 1}', thumbnail_url='https://img.example/t.jpg'), actor_id)


def test_pages_hold_twelve_newest_first(admin_id):
    add_posts(admin_id, 25)
    first = post_repo.list_posts(1)
    assert first.total == 25
    assert first.total_pages == 3
    assert len(first.items) == 12
    assert first.items[0].title == 'Clip 25'

    last = post_repo.list_posts(3)
    assert [p.title for p in last.items] == ['Clip 1']

    assert post_repo.list_posts(4).items == []


def test_page_below_one_is_rejected(admin_id):
    with pytest.raises(HTTPException) as exc:
        post_repo.list_posts(0)
    assert exc.value.status_code == 400


@pytest.mark.parametrize('current, total, expected', [
    (3, 25, 3),
    (3, 24, 2),
    (1, 0, 1),
    (2, 12, 1),
    (2, 13, 2),
])
def test_clamp_page(current, total, expected):
    assert post_repo.clamp_page(current, total) == expected


def test_slugs_are_unique(admin_id):
    first = post_repo.create_post(PostDraft(title='Test Clip!', thumbnail_url='https://img.example/a.jpg'), admin_id)
    second = post_repo.create_post(PostDraft(title='test   clip', thumbnail_url='https://img.example/a.jpg'), admin_id)
    third = post_repo.create_post(PostDraft(title='Test Clip', thumbnail_url='https://img.example/a.jpg'), admin_id)
    assert [first.slug, second.slug, third.slug] == ['test-clip', 'test-clip-2', 'test-clip-3']


def test_slugify_falls_back_for_symbols():
    assert slugify('!!!') == 'post'
    assert len(slugify('a' * 300)) == 80


def test_draft_validation_messages():
    with pytest.raises(ValidationError) as exc:
        PostDraft(title='   ')
    assert 'Title is required' in str(exc.value)

    with pytest.raises(ValidationError) as exc:
        PostDraft(title='x' * 201)
    assert 'Title too long' in str(exc.value)

    with pytest.raises(ValidationError) as exc:
        PostDraft(title='ok', video_links=['not a url'])
    assert 'Invalid video URL' in str(exc.value)


def test_blank_video_links_are_dropped_and_order_kept():
    draft = PostDraft(title='ok', video_links=['https://b.example/2', '  ', '', 'https://a.example/1'])
    assert draft.video_links == ['https://b.example/2', 'https://a.example/1']


def test_create_requires_thumbnail(admin_id):
    with pytest.raises(HTTPException) as exc:
        post_repo.create_post(PostDraft(title='No thumb'), admin_id)
    assert exc.value.detail == 'Please provide a thumbnail image (upload or URL)'
    assert post_repo.count_posts() == 0


def test_update_keeps_thumbnail_when_none_given(admin_id):
    post = post_repo.create_post(PostDraft(title='Original', thumbnail_url='https://img.example/a.jpg'), admin_id)
    updated = post_repo.update_post(post.id, PostDraft(title='Renamed'), admin_id)
    assert updated.title == 'Renamed'
    assert updated.thumbnail_url == 'https://img.example/a.jpg'
    assert updated.slug == post.slug


def test_update_missing_post_is_404(admin_id):
    with pytest.raises(HTTPException) as exc:
        post_repo.update_post(999, PostDraft(title='Ghost'), admin_id)
    assert exc.value.status_code == 404


def test_store_rejects_delete_by_subadmin(client, admin_id, subadmin_headers):
    post = post_repo.create_post(PostDraft(title='Keep me', thumbnail_url='https://img.example/a.jpg'), admin_id)
    helper_id = client.get('/auth/session', headers=subadmin_headers).json()['user_id']
    with pytest.raises(HTTPException) as exc:
        post_repo.delete_post(post.id, helper_id)
    assert exc.value.status_code == 403
    assert post_repo.get_post(post.id) is not None


def test_random_posts_exclude_current(admin_id):
    add_posts(admin_id, 6)
    picks = post_repo.get_random_posts('clip-1', 3)
    assert len(picks) == 3
    assert all(p.slug != 'clip-1' for p in picks)


def fields(post):
    return (post['title'], post['thumbnail_url'], post['video_links'], post['additional_images'])


def test_export_then_import_keeps_post_contents(admin_id):
    post_repo.create_post(PostDraft(
        title='Ordered', thumbnail_url='https://img.example/o.jpg',
        video_links=['https://vimeo.com/2', 'https://youtu.be/abc', 'https://terabox.com/s/1?surl=z'],
        additional_images=['https://img.example/x.jpg', 'https://img.example/y.jpg']
    ), admin_id)
    add_posts(admin_id, 2)
    backup = post_repo.export_posts()
    assert backup['version'] == '1.0'
    assert len(backup['posts']) == 3

    assert post_repo.import_posts(backup, admin_id) == 3
    assert post_repo.count_posts() == 6

    imported = post_repo.list_posts(1).items[:3]
    assert [fields(p.model_dump()) for p in imported] == [fields(p) for p in backup["posts"]]
    ordered = post_repo.get_post_by_slug('ordered-2')
    assert ordered.video_links == ['https://vimeo.com/2', 'https://youtu.be/abc', 'https://terabox.com/s/1?surl=z']


def test_import_ignores_ids_and_slugs_and_defaults_lists(admin_id):
    document = {'version': '1.0', 'posts': [
        {'id': 77, 'slug': 'forced', 'title': 'Bare', 'thumbnail_url': 'https://img.example/a.jpg', 'video_links': None},
    ]}
    assert post_repo.import_posts(document, admin_id) == 1
    post = post_repo.get_post_by_slug('bare')
    assert post.video_links == []
    assert post.additional_images == []
    assert post_repo.get_post_by_slug('forced') is None


@pytest.mark.parametrize('bad_entry', [
    {'title': 'T', 'thumbnail_url': 'https://img.example/x.jpg', 'video_links': 'https://youtu.be/abc'},
    {'title': 'T', 'thumbnail_url': 'https://img.example/x.jpg', 'additional_images': [{'url': 'x'}]},
    {'title': None, 'thumbnail_url': 'https://img.example/x.jpg'},
    {'title': 5, 'thumbnail_url': 'https://img.example/x.jpg'},
    {'title': 'T'},
    'not an object',
])
def test_malformed_entry_rejects_whole_backup(admin_id, bad_entry):
    document = {'posts': [
        {'title': 'Fine', 'thumbnail_url': 'https://img.example/a.jpg'},
        bad_entry,
    ]}
    with pytest.raises(HTTPException) as exc:
        post_repo.import_posts(document, admin_id)
    assert exc.value.status_code == 400
    assert exc.value.detail == 'Invalid backup file format'
    assert post_repo.count_posts() == 0


def test_import_rejects_bad_format(admin_id):
    with pytest.raises(HTTPException) as exc:
        post_repo.import_posts({'items': []}, admin_id)
    assert exc.value.detail == 'Invalid backup file format'


def test_page_far_past_the_end_is_empty(admin_id):
    add_posts(admin_id, 2)
    page = post_repo.list_posts(10 ** 20)
    assert page.items == []
    assert page.total == 2
    assert page.total_pages == 1
