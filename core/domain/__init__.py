"""
Domain 패키지

도메인 엔티티, 값 객체, 비즈니스 규칙을 정의합니다.
외부 의존성 없이 순수한 비즈니스 로직만 포함합니다.

주요 엔티티:
- Account: 암호화된 토큰을 보관하는 Gmail 계정
- AuthorizationRequest / CallbackResult: PKCE 인증 요청과 콜백 결과
- TokenGrant: 토큰 엔드포인트 응답
- AccountSyncInfo / AccountSyncResult: 계정별 동기화 결과
- SyncCycleReport: 동기화 주기 요약
"""
