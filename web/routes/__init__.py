"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- entities: 계정/재고 엔티티 등록
- ledger: 잔액, 원장 내역, Movement 기록, 정합
- stock: 매장 간 이동, 수량 직접 수정
- stock_takes: 재고 실사
"""
