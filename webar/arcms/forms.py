# arcms/forms.py
import os

from django import forms

from .models import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS

MAX_IMAGE_SIZE = 10 * 1024 * 1024
MAX_VIDEO_SIZE = 100 * 1024 * 1024
VIDEO_CONTENT_TYPES = ['video/mp4', 'video/quicktime', 'video/webm']


class MarkerForm(forms.Form):
    """
    Marker upload. Field names match the multipart body the admin UI and the
    /api/markers endpoint receive: title, markerImage, videoFile or videoUrl.
    """

    title = forms.CharField(
        max_length=200,
        widget=forms.TextInput(attrs={
            'class': 'form-control',
            'placeholder': 'Marker title',
        })
    )
    markerImage = forms.ImageField(
        widget=forms.FileInput(attrs={
            'class': 'form-control',
            'accept': 'image/*',
        })
    )
    videoFile = forms.FileField(
        required=False,
        widget=forms.FileInput(attrs={
            'class': 'form-control',
            'accept': 'video/*',
        })
    )
    videoUrl = forms.URLField(
        required=False,
        max_length=500,
        assume_scheme='https',
        widget=forms.URLInput(attrs={
            'class': 'form-control',
            'placeholder': 'https://... (instead of a file)',
        })
    )
    planeWidth = forms.FloatField(required=False, min_value=0.01, max_value=10.0)
    planeHeight = forms.FloatField(required=False, min_value=0.01, max_value=10.0)

    def clean_title(self):
        """Validate and clean title"""
        title = ' '.join(self.cleaned_data.get('title', '').split())
        if len(title) < 3:
            raise forms.ValidationError("Title must be at least 3 characters long.")
        return title

    def clean_markerImage(self):
        """Validate uploaded image"""
        image = self.cleaned_data.get('markerImage')
        if image:
            if image.size > MAX_IMAGE_SIZE:
                raise forms.ValidationError("Image file too large. Maximum size is 10MB.")

            content_type = getattr(image, 'content_type', '') or ''
            if not content_type.startswith('image/'):
                raise forms.ValidationError("Please upload a valid image file.")

            ext = os.path.splitext(image.name)[1].lower().lstrip('.')
            if ext not in IMAGE_EXTENSIONS:
                raise forms.ValidationError("Please upload PNG, JPEG, or WebP images only.")
        return image

    def clean_videoFile(self):
        """Validate uploaded video"""
        video = self.cleaned_data.get('videoFile')
        if video:
            if video.size > MAX_VIDEO_SIZE:
                raise forms.ValidationError("Video file too large. Maximum size is 100MB.")

            ext = os.path.splitext(video.name)[1].lower().lstrip('.')
            content_type = getattr(video, 'content_type', '') or ''
            # the extension is kept in the storage key
            if ext not in VIDEO_EXTENSIONS or (content_type and content_type not in VIDEO_CONTENT_TYPES
                                               and content_type != 'application/octet-stream'):
                raise forms.ValidationError("Please upload MP4, MOV, or WebM video files only.")
        return video

    def clean_videoUrl(self):
        url = self.cleaned_data.get('videoUrl', '')
        if url and not url.lower().startswith(('http://', 'https://')):
            raise forms.ValidationError("Video URL must be http or https.")
        return url

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get('videoFile') and not cleaned.get('videoUrl') and \
                'videoFile' not in self.errors and 'videoUrl' not in self.errors:
            self.add_error('videoFile', forms.ValidationError(
                "Upload a video file or give a video URL.", code='required'))
        return cleaned


class LoginForm(forms.Form):
    username = forms.CharField(
        max_length=150,
        widget=forms.TextInput(attrs={'class': 'form-control', 'autocomplete': 'username'})
    )
    password = forms.CharField(
        max_length=1024,
        strip=False,
        widget=forms.PasswordInput(attrs={'class': 'form-control', 'autocomplete': 'current-password'})
    )
