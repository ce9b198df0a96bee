import io
from datetime import datetime

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from admin_workflow import PostFormState, parse_json_list, read_upload
from file_utils import MAX_FILE_SIZE
from schemas.posts import PostResponse


def test_blank_form():
    form = PostFormState.blank()
    assert not form.is_editing
    assert form.submit_label == 'Create Post'
    assert form.video_links == ['']


def test_load_fills_form_for_editing():
    now = datetime(2026, 1, 1)
    post = PostResponse(
        id=4, title='Clip', slug='clip', thumbnail_url='https://img.example/a.jpg',
        additional_images=['https://img.example/b.jpg'], video_links=[],
        created_at=now, updated_at=now
    )
    form = PostFormState.load(post)
    assert form.is_editing
    assert form.editing_post_id == 4
    assert form.submit_label == 'Update Post'
    assert form.scroll_to_top
    assert form.video_links == ['']


def test_reorder_video_links():
    form = PostFormState(video_links=['a', 'b', 'c'])
    form.move_video_up(2)
    assert form.video_links == ['a', 'c', 'b']
    form.move_video_down(0)
    assert form.video_links == ['c', 'a', 'b']


def test_moves_at_the_edges_are_noops():
    form = PostFormState(video_links=['a', 'b'])
    form.move_video_up(0)
    form.move_video_down(1)
    assert form.video_links == ['a', 'b']


def test_add_update_remove_links():
    form = PostFormState.blank()
    form.update_video_link(0, 'https://youtu.be/abc')
    form.add_video_link()
    form.add_video_link('https://vimeo.com/1')
    form.remove_video_link(1)
    assert form.video_links == ['https://youtu.be/abc', 'https://vimeo.com/1']
    assert [p.kind for p in form.previews()] == ['youtube', 'other']


def test_parse_json_list():
    assert parse_json_list(None, 'bad') == []
    assert parse_json_list(' ', 'bad') == []
    assert parse_json_list('["a"]', 'bad') == ['a']
    with pytest.raises(ValueError, match='bad'):
        parse_json_list('{"a": 1}', 'bad')
    with pytest.raises(ValueError, match='bad'):
        parse_json_list('[oops', 'bad')


class RecordingFile(io.BytesIO):
    requested = None

    def read(self, size=-1):
        self.requested = size
        return super().read(size)


def test_upload_read_stops_past_the_size_limit():
    body = RecordingFile(b'\x00' * (MAX_FILE_SIZE + 1024))
    upload = UploadFile(file=body, filename='big.jpg', headers=Headers({'content-type': 'image/jpeg'}))
    with pytest.raises(ValueError, match='Image must be less than 5MB'):
        read_upload(upload)
    assert body.requested == MAX_FILE_SIZE + 1


def test_upload_at_the_limit_is_accepted():
    upload = UploadFile(file=io.BytesIO(b'\x00' * MAX_FILE_SIZE), filename='ok.png',
                        headers=Headers({'content-type': 'image/png'}))
    image = read_upload(upload)
    assert len(image.content) == MAX_FILE_SIZE
    assert image.content_type == 'image/png'
