from datetime import datetime
from product_genius.core.config import settings

VERIFICATION_URL_PLACEHOLDER = "{{VERIFICATION_URL}}"

VERIFICATION_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #1f2937; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background: #4f46e5; color: white; padding: 20px; text-align: center; }
        .button { background: #4f46e5; color: #fff; padding: 12px 20px; text-decoration: none; border-radius: 4px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Product Genius</h1>
            <p>Confirm your email address</p>
        </div>
        <p>Thanks for signing up! Confirm your email address to activate your account.</p>
        <p><a class="button" href="{{VERIFICATION_URL}}">Verify Email</a></p>
        <p>If the button does not work, copy this link into your browser:</p>
        <p>{{VERIFICATION_URL}}</p>
        <p>This link expires in 24 hours. If you did not create an account, you can ignore this email.</p>
    </div>
</body>
</html>
"""


def verification_url(token: str) -> str:
    return f"{settings.FRONTEND_URL}{settings.API_V1_STR}/users/temp/verify/{token}"


def verification_template(token: str) -> str:
    """HTML email template for email verification"""
    return VERIFICATION_TEMPLATE.replace(VERIFICATION_URL_PLACEHOLDER, verification_url(token))


def password_reset_template(reset_token: str):
    """HTML email template for password reset."""
    reset_link = f"{settings.FRONTEND_URL}/auth/reset-password?token={reset_token}"
    current_year = datetime.utcnow().year
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6;">
        <h2>Password Reset Request</h2>
        <p>We received a request to reset your Product Genius password.</p>
        <p>
            <a href="{reset_link}" style="background:#4f46e5;color:#fff;padding:10px 16px;text-decoration:none;border-radius:4px;">
                Reset Password
            </a>
        </p>
        <p>If you did not request this, you can ignore this email.</p>
        <p>This link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</p>
        <p>&copy; {current_year} Product Genius</p>
    </body>
    </html>
    """
