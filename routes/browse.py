from fastapi import APIRouter, HTTPException
from typing import List
from schemas.posts import PostCard, PostResponse, FeedResponse, PostDetailResponse, SocialBanner
from embeds import render_embed
from repositories import posts as post_repo
from repositories.social_links import list_social_links

router = APIRouter(prefix="/browse", tags=["browse"])

EMPTY_FEED_MESSAGE = "No posts yet. Check back soon!"

def page_path(page: int) -> str:
    """Page 1 lives at the site root."""
    return "/" if page == 1 else f"/{page}"

def to_card(post: PostResponse) -> PostCard:
    return PostCard(
        id=post.id, title=post.title, thumbnail_url=post.thumbnail_url,
        slug=post.slug, url=f"/post/{post.slug}"
    )

def get_social_banners() -> List[SocialBanner]:
    """Active banners in display order"""
    return [
        SocialBanner(id=link.id, platform=link.platform, url=link.url,
                     image_url=link.image_url, alt=f"{link.platform} Banner")
        for link in list_social_links(active_only=True)
    ]

def build_feed(page: int) -> FeedResponse:
    if page < 1:
        raise HTTPException(status_code=400, detail="Page must be 1 or greater")
    post_page = post_repo.list_posts(page, post_repo.PAGE_SIZE)
    total_pages = max(1, post_page.total_pages)
    has_previous = page > 1
    has_next = page < total_pages
    return FeedResponse(
        posts=[to_card(p) for p in post_page.items],
        page=page,
        total_pages=total_pages,
        has_previous=has_previous,
        has_next=has_next,
        previous_page_path=page_path(min(total_pages, page - 1)) if has_previous else None,
        next_page_path=page_path(page + 1) if has_next else None,
        social_banners=get_social_banners(),
        message=None if post_page.items else EMPTY_FEED_MESSAGE
    )

@router.get("/", response_model=FeedResponse)
def browse_feed():
    """Latest videos, first page."""
    return build_feed(1)

@router.get("/page/{page}", response_model=FeedResponse)
def browse_feed_page(page: int):
    return build_feed(page)

@router.get("/post/{slug}", response_model=PostDetailResponse)
def post_detail(slug: str):
    post = post_repo.get_post_by_slug(slug)
    if not post:
        raise HTTPException(status_code=404, detail={"message": "Post not found", "back_url": "/"})
    embeds = [
        render_embed(link, f"{post.title} - Video {index + 1}")
        for index, link in enumerate(post.video_links)
    ]
    return PostDetailResponse(
        post=post,
        embeds=embeds,
        additional_images=post.additional_images,
        must_watch=[to_card(p) for p in post_repo.get_random_posts(slug, 3)],
        social_banners=get_social_banners()
    )
