from app.schemas.otp import OTPFailure, SendOTPRequest, VerifyOTPRequest, OTPResponse
from app.schemas.user import PhoneUserOut, UserOut
from app.schemas.auth import (
    OTPLoginRequest, OTPRegisterRequest, RefreshTokenRequest, TokenResponse, AuthResponse
)
