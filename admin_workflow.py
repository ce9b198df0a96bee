"""Dashboard form state and the file-or-URL image plumbing behind it.

`PostFormState` mirrors what the post editor holds between submissions: the
title, the thumbnail choice, extra images and an ordered list of video links
with live previews. The helpers below turn multipart form input into
`ImageSource` values and resolve them to URLs just before a write.
"""
import json
import logging
from typing import List, Optional
from fastapi import UploadFile
from pydantic import BaseModel
from embeds import EmbedView, render_embed
from file_utils import (
    MAX_FILE_SIZE, ImageSource, ReferencedImage, StorageError, UploadedImage,
    resolve_image, validate_image
)
from schemas.admin import PostFormResponse
from schemas.posts import PostResponse

logger = logging.getLogger(__name__)

CREATE_LABEL = "Create Post"
UPDATE_LABEL = "Update Post"


class PostFormState(BaseModel):
    editing_post_id: Optional[int] = None
    title: str = ""
    thumbnail_url: str = ""
    additional_images: List[str] = []
    video_links: List[str] = [""]
    scroll_to_top: bool = False

    @classmethod
    def blank(cls) -> "PostFormState":
        return cls()

    @classmethod
    def load(cls, post: PostResponse) -> "PostFormState":
        """Edit-in-place: fill the form from an existing post."""
        return cls(
            editing_post_id=post.id,
            title=post.title,
            thumbnail_url=post.thumbnail_url,
            additional_images=list(post.additional_images),
            video_links=list(post.video_links) or [""],
            scroll_to_top=True,
        )

    @property
    def is_editing(self) -> bool:
        return self.editing_post_id is not None

    @property
    def submit_label(self) -> str:
        return UPDATE_LABEL if self.is_editing else CREATE_LABEL

    def add_video_link(self, url: str = ""):
        self.video_links.append(url)

    def update_video_link(self, index: int, url: str):
        self.video_links[index] = url

    def remove_video_link(self, index: int):
        del self.video_links[index]

    def move_video_up(self, index: int):
        if index <= 0 or index >= len(self.video_links):
            return
        links = self.video_links
        links[index - 1], links[index] = links[index], links[index - 1]

    def move_video_down(self, index: int):
        if index < 0 or index >= len(self.video_links) - 1:
            return
        links = self.video_links
        links[index], links[index + 1] = links[index + 1], links[index]

    def previews(self) -> List[EmbedView]:
        return preview_video_links(self.video_links, self.title)

    def to_response(self) -> PostFormResponse:
        return PostFormResponse(
            mode="edit" if self.is_editing else "create",
            editing_post_id=self.editing_post_id,
            submit_label=self.submit_label,
            scroll_to_top=self.scroll_to_top,
            title=self.title,
            thumbnail_url=self.thumbnail_url,
            additional_images=self.additional_images,
            video_links=self.video_links,
            previews=self.previews(),
        )


def preview_video_links(video_links: List[str], title: str = "") -> List[EmbedView]:
    previews = []
    for index, link in enumerate(link for link in video_links if link and link.strip()):
        label = f"{title} - Video {index + 1}" if title else None
        previews.append(render_embed(link.strip(), label))
    return previews


def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedImage]:
    """Read a multipart file into an UploadedImage; empty file inputs count as no file."""
    if upload is None or not upload.filename:
        return None
    # One byte past the limit is enough for validate_image to reject it
    content = upload.file.read(MAX_FILE_SIZE + 1)
    image = UploadedImage(content=content, filename=upload.filename, content_type=upload.content_type)
    validate_image(image)
    return image


def parse_json_list(raw: Optional[str], message: str) -> list:
    if raw is None or raw.strip() == "":
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError(message)
    if not isinstance(value, list):
        raise ValueError(message)
    return value


def thumbnail_source(upload: Optional[UploadFile], url: Optional[str]) -> Optional[ImageSource]:
    """Thumbnail is either uploaded or referenced, never both in one submission."""
    image = read_upload(upload)
    url = (url or "").strip()
    if image and url:
        raise ValueError("Provide either a thumbnail upload or a thumbnail URL, not both")
    if image:
        return image
    if url:
        return ReferencedImage(url=url)
    return None


def banner_source(upload: Optional[UploadFile], url: Optional[str]) -> Optional[ImageSource]:
    """Social banners: an uploaded file wins over a pasted URL."""
    image = read_upload(upload)
    if image:
        return image
    url = (url or "").strip()
    return ReferencedImage(url=url) if url else None


def additional_image_sources(manifest: Optional[str], uploads: Optional[List[UploadFile]]) -> List[ImageSource]:
    """Entries are {"url": ...} or {"upload": <index into additional_files>}, kept in manifest order."""
    entries = parse_json_list(manifest, "Invalid additional images")
    uploads = uploads or []
    sources: List[ImageSource] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("Invalid additional images")
        if "upload" in entry:
            index = entry["upload"]
            if not isinstance(index, int) or index < 0 or index >= len(uploads):
                raise ValueError("Invalid additional images")
            image = read_upload(uploads[index])
            if image:
                sources.append(image)
        elif isinstance(entry.get("url"), str) and entry["url"].strip():
            sources.append(ReferencedImage(url=entry["url"].strip()))
    return sources


def resolve_additional_images(sources: List[ImageSource]) -> List[str]:
    """Resolve each extra image on its own; a failed upload is skipped."""
    urls = []
    for source in sources:
        try:
            url = resolve_image(source)
        except StorageError as e:
            logger.error(f"Failed to upload additional image: {e}")
            continue
        if url:
            urls.append(url)
    return urls
