from cliptrail.utils.file_manager import FileManager, atomic_write_bytes

__all__ = [
    'FileManager',
    'atomic_write_bytes',
]
