from .profile import get_myspace_profile, save_myspace_profile, get_top_friends, save_top_friends
from .blog import (
    get_publication, save_publication, create_default_publication,
    get_documents, get_document, create_document, update_document, delete_document,
    get_published_documents, get_draft_documents, get_document_content,
    get_blog_entries, create_blog_entry,
)
from .social import get_bulletins, post_bulletin, get_profile_comments, post_comment
from .photos import (
    get_photo_albums, get_photo_album, create_photo_album, update_photo_album, delete_photo_album,
    get_all_photos, get_album_photos, get_photo, upload_photo, update_photo, delete_photo,
)
