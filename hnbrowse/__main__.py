from hnbrowse.app import main

raise SystemExit(main())
