# Schemas package 
from .posts import PostDraft, PostResponse, PostPage, PostCard, PostDetailResponse, FeedResponse, SocialBanner
from .social_links import SocialLinkDraft, SocialLinkResponse
from .admin import SubAdminResponse, DashboardResponse, PostFormResponse, VideoLinkPreviewRequest, PostMutationResponse, PostDeleteResponse, ImportResponse
