from .image_service import ImageService, format_file_size, companion_dimension
from .sketch_service import sketch
from .resize_service import ResizeResult, resize
from .cartoon_service import cartoonize
from .background_service import BackgroundService
from .session_controller import ExportedImage, ImageInfo, SessionController, SessionState
