"""
Config 패키지

Gmail Pulse 설정 로딩
- 환경 변수와 .env 파일
- 데이터 디렉터리의 config.toml [oauth] 섹션
- ENVIRONMENT 값에 따른 설정 클래스 선택
"""
