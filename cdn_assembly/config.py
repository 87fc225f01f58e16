import os

CDN_AWS_ACCOUNT = os.environ.get("CDK_DEFAULT_ACCOUNT", "123456789012")
CDN_AWS_REGION = os.environ.get("CDK_DEFAULT_REGION", "us-east-1")
CDN_AWS_PARTITION = os.environ.get("CDN_AWS_PARTITION", "aws")

CDN_SITE_BUCKET = os.environ.get("CDN_SITE_BUCKET")
CDN_DOMAIN_NAME = os.environ.get("CDN_DOMAIN_NAME")
CDN_CERTIFICATE_ARN = os.environ.get("CDN_CERTIFICATE_ARN")
CDN_WEB_ACL_ARN = os.environ.get("CDN_WEB_ACL_ARN")
CDN_HOSTED_ZONE_NAME = os.environ.get("CDN_HOSTED_ZONE_NAME")
CDN_LOG_LEVEL = os.environ.get("CDN_LOG_LEVEL", "INFO")

DEFAULT_ROOT_OBJECT = "index.html"

# Custom origins
DEFAULT_HTTP_PORT = 80
DEFAULT_HTTPS_PORT = 443
DEFAULT_ORIGIN_READ_TIMEOUT = 30
DEFAULT_ORIGIN_KEEPALIVE_TIMEOUT = 5

# Custom cache policies, seconds
DEFAULT_CACHE_TTL = 86400
DEFAULT_CACHE_MIN_TTL = 0
DEFAULT_CACHE_MAX_TTL = 31536000

CLOUDFRONT_SERVICE_PRINCIPAL = "cloudfront.amazonaws.com"
READ_OBJECT_ACTION = "s3:GetObject"
