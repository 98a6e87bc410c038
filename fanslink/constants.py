USERS_COLLECTION = "users"
CUSTOMERS_COLLECTION = "customers"
SUBSCRIPTIONS_COLLECTION = "subscriptions"
TEMPLATES_COLLECTION = "templates"

PROFILE_PICTURE_PATH = "profilePictures/{uid}/{filename}"
USER_IMAGE_PATH = "users/{uid}/images/{timestamp}_{filename}"

USERNAME_MAX_LENGTH = 64
LINK_TITLE_MAX_LENGTH = 256
URL_MAX_LENGTH = 2048
