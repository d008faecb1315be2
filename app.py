# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py init --db stockmaster.db
  python app.py produto add --code P1 --name "Pão" --category "Burger e Otakus"
  python app.py movimento registrar <id> entrada 10 --motivo "Compra"
  python app.py dashboard
  python app.py vigiar --segundos 60
"""

from stockmaster.adapters.cli import main

if __name__ == "__main__":
    main()
