"""Video link classification and embed rendering.

A post's video links are free-form strings. Each one is classified into an
embed variant and rendered as either an inline frame (YouTube, TeraBox-style
file-share hosts) or a link-out card. Classification is pure string parsing.
"""
import re
import logging
from html import escape
from typing import Literal, Optional, Union
from urllib.parse import parse_qs, quote, urlsplit
from pydantic import BaseModel

logger = logging.getLogger(__name__)

YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&?#/\s]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/embed/([^&?#/\s]+)", re.IGNORECASE),
]
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/{video_id}"

FILE_SHARE_HOSTS = ("terabox.com", "1024terabox.com", "teraboxapp.com", "4funbox.com")
FILE_SHARE_EMBED_URL = "https://www.1024terabox.com/sharing/embed?surl={surl}&autoplay=0"

YOUTUBE_ALLOW = "accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture; web-share"
FILE_SHARE_ALLOW = "accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture"
FILE_SHARE_SANDBOX = "allow-scripts allow-same-origin allow-presentation"


class YouTubeVideo(BaseModel):
    kind: Literal["youtube"] = "youtube"
    video_id: str

    @property
    def embed_url(self) -> str:
        return YOUTUBE_EMBED_URL.format(video_id=self.video_id)


class FileShareVideo(BaseModel):
    kind: Literal["fileShareHost"] = "fileShareHost"
    embed_url: str


class ExternalVideo(BaseModel):
    kind: Literal["other"] = "other"
    original_url: str


VideoClassification = Union[YouTubeVideo, FileShareVideo, ExternalVideo]


class EmbedView(BaseModel):
    kind: str
    source_url: str
    embed_url: Optional[str] = None
    title: str
    allow: Optional[str] = None
    sandbox: Optional[str] = None
    external_label: str
    html: str


def is_file_share_link(url: str) -> bool:
    lowered = url.lower()
    return any(host in lowered for host in FILE_SHARE_HOSTS)

def file_share_embed_url(url: str) -> str:
    """Build the provider embed URL from the `surl` share id, or fall back to the raw link."""
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url!r}")
        surl = parse_qs(parts.query).get("surl")
    except ValueError as e:
        logger.debug(f"Could not parse file-share link, embedding as-is: {e}")
        return url
    if not surl or not surl[0]:
        return url
    return FILE_SHARE_EMBED_URL.format(surl=quote(surl[0], safe="!~*'()"))

def classify_video_url(url: str) -> VideoClassification:
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return YouTubeVideo(video_id=match.group(1))
    if is_file_share_link(url):
        return FileShareVideo(embed_url=file_share_embed_url(url))
    return ExternalVideo(original_url=url)

def _external_link(url: str, label: str) -> str:
    return f'<a href="{escape(url)}" target="_blank" rel="noopener noreferrer">{escape(label)}</a>'

def _iframe(src: str, title: str, allow: str, sandbox: Optional[str] = None) -> str:
    sandbox_attr = f' sandbox="{escape(sandbox)}"' if sandbox else ""
    return (
        f'<iframe src="{escape(src)}" title="{escape(title)}" frameborder="0" '
        f'allow="{escape(allow)}" allowfullscreen{sandbox_attr}></iframe>'
    )

def render_classification(url: str, classification: VideoClassification, title: Optional[str] = None) -> EmbedView:
    if isinstance(classification, YouTubeVideo):
        frame_title = title or "YouTube Video"
        label = "Open in YouTube"
        html = (
            '<div class="video-embed video-embed--youtube">'
            f'{_iframe(classification.embed_url, frame_title, YOUTUBE_ALLOW)}'
            f'{_external_link(url, label)}</div>'
        )
        return EmbedView(kind=classification.kind, source_url=url, embed_url=classification.embed_url,
                         title=frame_title, allow=YOUTUBE_ALLOW, external_label=label, html=html)
    if isinstance(classification, FileShareVideo):
        frame_title = title or "TeraBox Video"
        label = "Open in TeraBox"
        html = (
            '<div class="video-embed video-embed--file-share">'
            f'{_iframe(classification.embed_url, frame_title, FILE_SHARE_ALLOW, FILE_SHARE_SANDBOX)}'
            f'{_external_link(url, label)}</div>'
        )
        return EmbedView(kind=classification.kind, source_url=url, embed_url=classification.embed_url,
                         title=frame_title, allow=FILE_SHARE_ALLOW, sandbox=FILE_SHARE_SANDBOX,
                         external_label=label, html=html)
    # Link-out card, no inline frame
    card_title = title or "External Video Link"
    label = "Open Video"
    html = (
        '<div class="video-embed video-embed--external">'
        f'<p>{escape(card_title)}</p>{_external_link(url, label)}</div>'
    )
    return EmbedView(kind=classification.kind, source_url=url, title=card_title,
                     external_label=label, html=html)

def render_embed(url: str, title: Optional[str] = None) -> EmbedView:
    return render_classification(url, classify_video_url(url), title)
