import platform

from cliptrail.clipboard.base import ClipboardProvider


def get_clipboard_provider() -> ClipboardProvider:
    system = platform.system()

    if system == "Windows":
        from cliptrail.clipboard.windows import WindowsClipboard
        return WindowsClipboard()
    elif system == "Linux":
        from cliptrail.clipboard.linux import LinuxClipboard
        return LinuxClipboard()
    elif system == "Darwin":
        from cliptrail.clipboard.macos import MacOSClipboard
        return MacOSClipboard()
    else:
        raise NotImplementedError(f"Platform '{system}' is not supported")
