"""Models package initialization"""
from .forms import ListingForm, SigninForm, SignupForm
from .listing import Listing
from .user import User

__all__ = ['Listing', 'User', 'SignupForm', 'SigninForm', 'ListingForm']
