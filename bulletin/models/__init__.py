from bulletin.models.announcement import Announcement, AnnouncementView
from bulletin.models.attachment import Attachment
from bulletin.models.system_setting import SystemSetting

__all__ = ["Announcement", "AnnouncementView", "Attachment", "SystemSetting"]
