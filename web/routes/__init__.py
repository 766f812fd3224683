"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- transactions: 거래 입력/조회
- accounts: 계좌 개설/조회/해지/상태 변경
- sub_products: 서브상품 카탈로그 (읽기 전용)
- ledger: 시산표
- admin: EOD 실행/취소/기록
"""
