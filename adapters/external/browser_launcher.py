"""
브라우저 실행 어댑터
"""

import webbrowser

from core.domain.ports import BrowserLauncherPort, LoggerPort


class SystemBrowserLauncherAdapter(BrowserLauncherPort):
    """시스템 기본 브라우저로 URL을 여는 어댑터"""

    def __init__(self, logger: LoggerPort):
        self.logger = logger

    def open_url(self, url: str) -> bool:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            self.logger.warning(f"브라우저 실행 실패: {str(e)}")
            return False

        if not opened:
            self.logger.warning("사용 가능한 브라우저를 찾지 못했습니다")
        return opened
